"""
Test configuration and fixtures.
"""
import io
import os
import tempfile
from datetime import datetime

import pytest

# Set testing environment before config is imported
_TEST_ROOT = tempfile.mkdtemp(prefix="magazine-portal-tests-")
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000000"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT}/unused.db"
os.environ["UPLOADS_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["LOG_FILE"] = os.path.join(_TEST_ROOT, "logs", "test.log")
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

from fastapi.testclient import TestClient

import config
from app import app
from database.connection import Database
from database.models import (
    User, Faculty, Submission, SubmissionStatus, RoleCode, ROLE_IDS
)
from auth.security import create_access_token, get_password_hash
from services.settings_service import ensure_roles
from storage.local_storage import LocalStorage

TEST_PASSWORD = "password123"


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database per test, installed as the application database."""
    database = Database(f"sqlite:///{tmp_path}/test.db", pool_size=5, max_overflow=5)
    database.create_tables()
    monkeypatch.setattr(config, "db", database)
    monkeypatch.setattr(config, "UPLOADS_DIR", tmp_path / "uploads")
    with database.get_session() as session:
        ensure_roles(session)
    yield database
    database.engine.dispose()


@pytest.fixture
def session(db):
    """Session for arranging and inspecting rows."""
    s = db.SessionLocal()
    yield s
    s.close()


@pytest.fixture
def storage(db):
    return LocalStorage(config.UPLOADS_DIR)


@pytest.fixture
def client(db):
    """Test client; the lifespan is not run because config.db is already set."""
    return TestClient(app)


@pytest.fixture
def faculties(session):
    """Two faculties: science and arts."""
    science = Faculty(faculty_name="Faculty of Science", description="Physics, chemistry and biology")
    arts = Faculty(faculty_name="Faculty of Arts", description="Literature and history")
    session.add_all([science, arts])
    session.commit()
    session.refresh(science)
    session.refresh(arts)
    return {"science": science, "arts": arts}


def make_user(session, role: RoleCode, email: str, faculty=None, first_name="Test", last_name="User",
              password: str = TEST_PASSWORD) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=get_password_hash(password),
        faculty_id=faculty.faculty_id if faculty else None,
        role_id=ROLE_IDS[role],
        is_active=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_submission(session, storage, author: User, title: str = "My Article",
                    status: SubmissionStatus = SubmissionStatus.SUBMITTED,
                    file_type: str = "pdf", content: bytes = b"%PDF-1.4 test content",
                    academic_year: str = "2024-2025", submitted_at: datetime = None,
                    with_file: bool = True) -> Submission:
    if with_file:
        file_path = storage.save_upload(io.BytesIO(content), author.user_id, f".{file_type}")
    else:
        file_path = f"uploads/user_{author.user_id}/missing.{file_type}"
    submission = Submission(
        user_id=author.user_id,
        faculty_id=author.faculty_id,
        title=title,
        description=f"Description of {title}",
        file_path=file_path,
        file_type=file_type,
        original_filename=f"{title}.{file_type}",
        academic_year=academic_year,
        terms_accepted=True,
    )
    submission.set_status(status)
    if submitted_at is not None:
        submission.submitted_at = submitted_at
    session.add(submission)
    session.commit()
    session.refresh(submission)
    return submission


def auth_header_for(user: User) -> dict:
    token = create_access_token(
        {"userId": user.user_id, "role": user.role.value, "email": user.email},
        config.SECRET_KEY
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(session):
    return make_user(session, RoleCode.ADMIN, "admin@uni.edu", first_name="Ada", last_name="Admin")


@pytest.fixture
def manager(session):
    return make_user(session, RoleCode.MANAGER, "manager@uni.edu", first_name="Max", last_name="Manager")


@pytest.fixture
def coordinator(session, faculties):
    return make_user(session, RoleCode.COORDINATOR, "coord@uni.edu", faculties["science"],
                     first_name="Cora", last_name="Coordinator")


@pytest.fixture
def student(session, faculties):
    return make_user(session, RoleCode.STUDENT, "student@uni.edu", faculties["science"],
                     first_name="Sam", last_name="Student")


@pytest.fixture
def other_student(session, faculties):
    return make_user(session, RoleCode.STUDENT, "artist@uni.edu", faculties["arts"],
                     first_name="Alex", last_name="Artist")


@pytest.fixture
def admin_headers(admin):
    return auth_header_for(admin)


@pytest.fixture
def manager_headers(manager):
    return auth_header_for(manager)


@pytest.fixture
def coordinator_headers(coordinator):
    return auth_header_for(coordinator)


@pytest.fixture
def student_headers(student):
    return auth_header_for(student)
