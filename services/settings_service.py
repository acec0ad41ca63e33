"""
Settings persistence: the single academic calendar row and per-user preferences.
"""
from datetime import date, datetime
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from database.models import (
    AcademicSetting, UserSetting, Role, RoleCode, ROLE_IDS, ROLE_NAMES, ROLE_DESCRIPTIONS
)
from core.exceptions import ValidationError
from core.logger import logger
import config

DEFAULT_NOTIFICATION_SETTINGS = {
    "email_notifications": True,
    "comment_notifications": True,
    "selection_notifications": True,
    "deadline_reminders": True,
}

DEFAULT_DISPLAY_SETTINGS = {
    "dark_mode": True,
    "compact_view": False,
    "show_statistics": True,
    "default_view": "submissions",
}

DEFAULT_EXPORT_SETTINGS = {
    "include_comments": True,
    "include_metadata": True,
    "default_format": "zip",
}

# settings kind -> (UserSetting column, defaults)
USER_SETTING_KINDS = {
    "notifications": ("notification_settings", DEFAULT_NOTIFICATION_SETTINGS),
    "display": ("display_settings", DEFAULT_DISPLAY_SETTINGS),
    "export": ("export_settings", DEFAULT_EXPORT_SETTINGS),
}


def _parse_date(value, field: str) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"Invalid date for {field}: {value}")


def academic_defaults() -> Dict[str, Any]:
    return {
        "academic_year": config.DEFAULT_ACADEMIC_YEAR,
        "submission_deadline": config.DEFAULT_SUBMISSION_DEADLINE,
        "final_edit_deadline": config.DEFAULT_FINAL_EDIT_DEADLINE,
        "publication_date": config.DEFAULT_PUBLICATION_DATE,
    }


def serialize_academic(row: AcademicSetting) -> Dict[str, Any]:
    return {
        "setting_id": row.setting_id,
        "academic_year": row.academic_year,
        "submission_deadline": row.submission_deadline.isoformat() if row.submission_deadline else None,
        "final_edit_deadline": row.final_edit_deadline.isoformat() if row.final_edit_deadline else None,
        "publication_date": row.publication_date.isoformat() if row.publication_date else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


class SettingsService:
    """Academic calendar and user preference storage."""

    @staticmethod
    def get_academic(db: Session) -> Optional[AcademicSetting]:
        return db.query(AcademicSetting).order_by(AcademicSetting.setting_id.asc()).first()

    @staticmethod
    def ensure_academic(db: Session) -> AcademicSetting:
        """Return the settings row, inserting the defaults when the table is empty."""
        row = SettingsService.get_academic(db)
        if row is not None:
            return row
        defaults = academic_defaults()
        row = AcademicSetting(
            academic_year=defaults["academic_year"],
            submission_deadline=_parse_date(defaults["submission_deadline"], "submission_deadline"),
            final_edit_deadline=_parse_date(defaults["final_edit_deadline"], "final_edit_deadline"),
            publication_date=_parse_date(defaults["publication_date"], "publication_date"),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info("Inserted default academic settings")
        return row

    @staticmethod
    def upsert_academic(
        db: Session,
        academic_year: Optional[str],
        submission_deadline,
        final_edit_deadline,
        publication_date=None
    ) -> AcademicSetting:
        """
        Update the single academic settings row, creating it if needed.

        Raises:
            ValidationError: missing fields or unparseable dates
        """
        if not academic_year or not submission_deadline or not final_edit_deadline:
            raise ValidationError("All fields are required")

        values = {
            "academic_year": academic_year.strip(),
            "submission_deadline": _parse_date(submission_deadline, "submission_deadline"),
            "final_edit_deadline": _parse_date(final_edit_deadline, "final_edit_deadline"),
        }
        if publication_date is not None:
            values["publication_date"] = _parse_date(publication_date, "publication_date")

        row = SettingsService.get_academic(db)
        if row is None:
            row = AcademicSetting(**values)
            db.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def get_user_settings(db: Session, user_id: int, kind: str) -> Dict[str, Any]:
        """Stored preferences of one kind layered over the defaults."""
        column, defaults = USER_SETTING_KINDS[kind]
        row = db.query(UserSetting).filter(UserSetting.user_id == user_id).first()
        stored = getattr(row, column) if row is not None else None
        return {**defaults, **(stored or {})}

    @staticmethod
    def put_user_settings(db: Session, user_id: int, kind: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert one kind of preferences for a user."""
        column, defaults = USER_SETTING_KINDS[kind]
        if not isinstance(values, dict):
            raise ValidationError("Settings must be a JSON object")
        row = db.query(UserSetting).filter(UserSetting.user_id == user_id).first()
        stored = getattr(row, column) if row is not None else None
        merged = {**defaults, **(stored or {}), **values}

        if row is None:
            row = UserSetting(user_id=user_id)
            db.add(row)
        setattr(row, column, merged)
        row.updated_at = datetime.utcnow()
        db.commit()
        return merged


def ensure_roles(db: Session) -> int:
    """
    Insert any of the four built-in roles missing from the roles table.

    Returns:
        Number of roles inserted
    """
    existing = {role_id for (role_id,) in db.query(Role.role_id).all()}
    added = 0
    for code in RoleCode:
        if ROLE_IDS[code] in existing:
            continue
        db.add(Role(
            role_id=ROLE_IDS[code],
            role_code=code.value,
            role_name=ROLE_NAMES[code],
            description=ROLE_DESCRIPTIONS[code],
        ))
        added += 1
    if added:
        db.commit()
        logger.info(f"Seeded {added} roles")
    return added
