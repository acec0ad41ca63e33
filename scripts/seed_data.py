#!/usr/bin/env python3
"""
Seed reference data: roles, faculties and the academic calendar.
Safe to run repeatedly; existing rows are left alone.
"""
import sys
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import Faculty
from services.settings_service import SettingsService, ensure_roles
import config

DEFAULT_FACULTIES = [
    ("Faculty of Arts and Humanities", "Literature, history, languages and the creative arts"),
    ("Faculty of Business", "Business, management, marketing and economics"),
    ("Faculty of Computing and Engineering", "Computer science, software and engineering"),
    ("Faculty of Health Sciences", "Nursing, medicine and allied health"),
    ("Faculty of Science", "Physics, chemistry, biology and mathematics"),
]


def seed():
    config.db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    config.db.create_tables()

    with config.db.get_session() as db:
        roles_added = ensure_roles(db)

        existing = {name for (name,) in db.query(Faculty.faculty_name).all()}
        faculties_added = 0
        for name, description in DEFAULT_FACULTIES:
            if name not in existing:
                db.add(Faculty(faculty_name=name, description=description))
                faculties_added += 1
        db.commit()

        settings = SettingsService.ensure_academic(db)

        print(f"Roles added: {roles_added}")
        print(f"Faculties added: {faculties_added}")
        print(f"Academic year: {settings.academic_year}")


if __name__ == "__main__":
    seed()
