"""
Database models for the university magazine portal.
"""
from datetime import datetime
from typing import Optional, Union
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text,
    ForeignKey, JSON, Index, TypeDecorator
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums - Must be defined before models that use them
# ============================================================================

class RoleCode(str, enum.Enum):
    """Canonical role codes carried in tokens."""
    ADMIN = "ADMIN"
    MANAGER = "MNGR"
    COORDINATOR = "COORD"
    STUDENT = "STUD"


class SubmissionStatus(str, enum.Enum):
    """Review status of a submission."""
    SUBMITTED = "Submitted"
    SELECTED = "Selected"
    REJECTED = "Rejected"


# Fixed role ids; the roles table is seeded with exactly these rows
ROLE_IDS = {
    RoleCode.ADMIN: 1,
    RoleCode.MANAGER: 2,
    RoleCode.COORDINATOR: 3,
    RoleCode.STUDENT: 4,
}

ROLE_NAMES = {
    RoleCode.ADMIN: "Administrator",
    RoleCode.MANAGER: "Marketing Manager",
    RoleCode.COORDINATOR: "Faculty Coordinator",
    RoleCode.STUDENT: "Student",
}

ROLE_DESCRIPTIONS = {
    RoleCode.ADMIN: "Full system access",
    RoleCode.MANAGER: "University marketing manager",
    RoleCode.COORDINATOR: "Faculty marketing coordinator",
    RoleCode.STUDENT: "Regular student user",
}


def normalize_role(value: Union[int, str, RoleCode, None]) -> Optional[RoleCode]:
    """
    Map a numeric id, numeric string, role code or role name onto a RoleCode.

    Returns None when the value does not name a known role.
    """
    if value is None:
        return None
    if isinstance(value, RoleCode):
        return value
    text = str(value).strip()
    if text.isdigit():
        for code, role_id in ROLE_IDS.items():
            if role_id == int(text):
                return code
        return None
    upper = text.upper()
    for code in RoleCode:
        if upper in (code.value, code.name):
            return code
    for code, name in ROLE_NAMES.items():
        if upper == name.upper():
            return code
    return None


# ============================================================================
# Models
# ============================================================================

class Role(Base):
    """User role lookup table."""
    __tablename__ = "roles"

    role_id = Column(Integer, primary_key=True)
    role_code = Column(String(10), unique=True, nullable=False)
    role_name = Column(String(50), nullable=False)
    description = Column(String(255), nullable=True)

    users = relationship("User", back_populates="role_ref")


class Faculty(Base):
    """Faculty (organisational unit) that scopes coordinators and statistics."""
    __tablename__ = "faculties"

    faculty_id = Column(Integer, primary_key=True, index=True)
    faculty_name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="faculty")
    submissions = relationship("Submission", back_populates="faculty")


class User(Base):
    """Portal account (administrator, manager, coordinator or student)."""
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash; legacy rows may hold plaintext
    faculty_id = Column(Integer, ForeignKey("faculties.faculty_id", ondelete="SET NULL"), nullable=True)
    role_id = Column(Integer, ForeignKey("roles.role_id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    faculty = relationship("Faculty", back_populates="users")
    role_ref = relationship("Role", back_populates="users")
    submissions = relationship("Submission", back_populates="author", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="author", cascade="all, delete-orphan")
    settings = relationship("UserSetting", back_populates="user", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_user_faculty', 'faculty_id'),
        Index('idx_user_role', 'role_id'),
    )

    @property
    def role(self) -> Optional[RoleCode]:
        return normalize_role(self.role_id)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def faculty_name(self) -> Optional[str]:
        return self.faculty.faculty_name if self.faculty else None


class Submission(Base):
    """An uploaded article or image awaiting review."""
    __tablename__ = "submissions"

    submission_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    faculty_id = Column(Integer, ForeignKey("faculties.faculty_id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_path = Column(String(500), nullable=False)  # relative to the uploads root, e.g. uploads/user_3/file-...pdf
    file_type = Column(String(10), nullable=False)
    original_filename = Column(String(255), nullable=True)
    academic_year = Column(String(20), nullable=False)
    status = Column(EnumValue(SubmissionStatus, 20), default=SubmissionStatus.SUBMITTED, nullable=False)
    selected = Column(Boolean, default=False, nullable=False)
    terms_accepted = Column(Boolean, default=False, nullable=False)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    author = relationship("User", back_populates="submissions")
    faculty = relationship("Faculty", back_populates="submissions")
    comments = relationship("Comment", back_populates="submission", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_submission_user', 'user_id'),
        Index('idx_submission_faculty', 'faculty_id'),
        Index('idx_submission_status', 'status'),
        Index('idx_submission_selected', 'selected'),
        Index('idx_submission_submitted', 'submitted_at'),
    )

    def set_status(self, status: SubmissionStatus) -> None:
        """Keep the selected flag in step with the review status."""
        self.status = status
        self.selected = status == SubmissionStatus.SELECTED
        self.last_updated = datetime.utcnow()


class Comment(Base):
    """Reviewer feedback on a submission."""
    __tablename__ = "comments"

    comment_id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.submission_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    comment_text = Column(Text, nullable=False)
    commented_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    submission = relationship("Submission", back_populates="comments")
    author = relationship("User", back_populates="comments")

    __table_args__ = (
        Index('idx_comment_submission', 'submission_id'),
    )


class ActivityLog(Base):
    """User activity trail shown on dashboards."""
    __tablename__ = "activitylogs"

    log_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    action_type = Column(String(50), nullable=False)
    action_details = Column(Text, nullable=True)
    log_timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)

    user = relationship("User")

    __table_args__ = (
        Index('idx_activity_user', 'user_id'),
        Index('idx_activity_timestamp', 'log_timestamp'),
    )


class PageVisit(Base):
    """Frontend page view recorded by the page visit middleware."""
    __tablename__ = "page_visits"

    visit_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    page_url = Column(String(500), nullable=False)
    visit_timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    browser_info = Column(String(500), nullable=True)
    ip_address = Column(String(45), nullable=True)

    __table_args__ = (
        Index('idx_page_visit_timestamp', 'visit_timestamp'),
        Index('idx_page_visit_url', 'page_url'),
    )


class AcademicSetting(Base):
    """Academic calendar; the application keeps a single row."""
    __tablename__ = "academic_settings"

    setting_id = Column(Integer, primary_key=True)
    academic_year = Column(String(20), nullable=False)
    submission_deadline = Column(Date, nullable=False)
    final_edit_deadline = Column(Date, nullable=False)
    publication_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UserSetting(Base):
    """Per-user preference blobs (notifications, display, export)."""
    __tablename__ = "user_settings"

    setting_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False)
    notification_settings = Column(JSON, nullable=True)
    display_settings = Column(JSON, nullable=True)
    export_settings = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="settings")
