#!/usr/bin/env python3
"""
Script to create an administrator account.
"""
import sys
from getpass import getpass
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import RoleCode
from core.exceptions import PortalError
from services.auth_service import AuthService
from services.settings_service import ensure_roles
import config


def create_admin():
    """Create an administrator account."""
    config.db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    config.db.create_tables()

    print("Creating administrator...")
    print("=" * 50)

    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    email = input("Email: ").strip()
    password = getpass("Password: ").strip()

    if not first_name or not last_name or not email or not password:
        print("Error: First name, last name, email and password are required")
        sys.exit(1)

    try:
        with config.db.get_session() as db:
            ensure_roles(db)
            user = AuthService.create_user(
                db=db,
                first_name=first_name,
                last_name=last_name,
                email=email,
                password=password,
                role=RoleCode.ADMIN
            )
            print("\n✓ Administrator created successfully!")
            print(f"  Name: {user.full_name}")
            print(f"  Email: {user.email}")
            print(f"  Role: {RoleCode.ADMIN.value}")
    except PortalError as e:
        print(f"\n✗ Error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    create_admin()
