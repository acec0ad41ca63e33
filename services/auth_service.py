"""
Account service: user creation, credential checks and token issuing.
"""
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from database.models import User, Faculty, RoleCode, ROLE_IDS, ROLE_NAMES, normalize_role
from auth.security import (
    verify_password, verify_legacy_password, is_password_hash, BCRYPT_MAX_BYTES,
    get_password_hash, create_access_token
)
from core.exceptions import ValidationError, ConflictError
from core.validators import validate_email_address, validate_password
from core.logger import logger
import config


class AuthService:
    """Service for account and authentication operations."""

    @staticmethod
    def find_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def check_account_fields(
        db: Session,
        email: str,
        faculty_id,
        password: Optional[str],
        exclude_user_id: Optional[int] = None,
        duplicate_message: str = "Email already in use"
    ) -> Optional[Faculty]:
        """
        Validate email, faculty and (when given) password for a create or update.

        Returns:
            The referenced Faculty, or None when faculty_id is empty

        Raises:
            ValidationError: malformed input
            ConflictError: email already taken
        """
        is_valid, error = validate_email_address(email)
        if not is_valid:
            raise ValidationError(error)

        if password is not None:
            is_valid, error = validate_password(password, config.MIN_PASSWORD_LENGTH)
            if not is_valid:
                raise ValidationError(error)

        existing = AuthService.find_by_email(db, email)
        if existing and existing.user_id != exclude_user_id:
            raise ConflictError(duplicate_message)

        if faculty_id in (None, ""):
            return None
        try:
            faculty = db.query(Faculty).filter(Faculty.faculty_id == int(faculty_id)).first()
        except (TypeError, ValueError):
            faculty = None
        if faculty is None:
            raise ValidationError("Faculty not found")
        return faculty

    @staticmethod
    def create_user(
        db: Session,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        role: RoleCode,
        faculty_id: Optional[int] = None
    ) -> User:
        """
        Create a new user after validating the fields.

        Args:
            db: Database session
            first_name: Given name
            last_name: Family name
            email: Login email (stored lowercase)
            password: Plain text password
            role: Role of the new account
            faculty_id: Faculty the account belongs to

        Returns:
            Created User

        Raises:
            ValidationError, ConflictError
        """
        faculty = AuthService.check_account_fields(db, email, faculty_id, password)

        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip().lower(),
            password=get_password_hash(password),
            faculty_id=faculty.faculty_id if faculty else None,
            role_id=ROLE_IDS[role],
            is_active=True,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent registration with the same email
            db.rollback()
            raise ConflictError("Email already in use")
        db.refresh(user)
        logger.info(f"Created user: {user.email} (role: {role.value})")
        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Accounts still holding a plaintext password are upgraded to a bcrypt
        hash on their first successful login.

        Returns:
            User if authenticated, None otherwise
        """
        user = AuthService.find_by_email(db, email)
        if not user or not user.password or not user.is_active:
            return None

        if is_password_hash(user.password):
            if not verify_password(password, user.password):
                return None
        else:
            if not verify_legacy_password(password, user.password):
                return None
            if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
                logger.warning(f"Legacy password of user {user.user_id} is too long to hash; left as is")
            else:
                user.password = get_password_hash(password)
                logger.info(f"Upgraded legacy password hash for user {user.user_id}")

        user.last_login = datetime.utcnow()
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the user's password after checking the current one.

        Raises:
            ValidationError: wrong current password or weak new password
        """
        if is_password_hash(user.password):
            matches = verify_password(current_password or "", user.password)
        else:
            matches = verify_legacy_password(current_password or "", user.password or "")
        if not matches:
            raise ValidationError("Current password is incorrect")

        is_valid, error = validate_password(new_password, config.MIN_PASSWORD_LENGTH)
        if not is_valid:
            raise ValidationError(error)

        user.password = get_password_hash(new_password)
        db.commit()

    @staticmethod
    def create_token(user: User) -> Tuple[str, int]:
        """
        Issue an access token for the user.

        Returns:
            Tuple of (token, lifetime in seconds)
        """
        role = normalize_role(user.role_id)
        data = {
            "userId": user.user_id,
            "role": role.value if role else None,
            "email": user.email,
        }
        token = create_access_token(data, config.SECRET_KEY)
        return token, config.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @staticmethod
    def user_payload(user: User) -> dict:
        """User block returned by register and login."""
        role = normalize_role(user.role_id)
        return {
            "id": user.user_id,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "email": user.email,
            "faculty": user.faculty_id,
            "facultyName": user.faculty_name,
            "role": role.value if role else None,
            "lastLogin": user.last_login.isoformat() if user.last_login else None,
        }


def serialize_user(user: User) -> dict:
    """Account row shape used by profile and user management endpoints."""
    role = normalize_role(user.role_id)
    return {
        "user_id": user.user_id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "faculty_id": user.faculty_id,
        "faculty_name": user.faculty_name,
        "role_id": user.role_id,
        "role": role.value if role else None,
        "role_name": ROLE_NAMES.get(role),
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }
