"""
Registration, login and request authentication.
"""
from datetime import timedelta

import config
from auth.security import create_access_token, get_password_hash
from database.models import User, ActivityLog, RoleCode, ROLE_IDS
from conftest import make_user, auth_header_for, TEST_PASSWORD


def _register_body(faculty_id, **overrides):
    body = {
        "first_name": "Nina",
        "last_name": "Newcomer",
        "email": "Nina@Uni.edu",
        "faculty_id": faculty_id,
        "password": "securepass1",
    }
    body.update(overrides)
    return body


class TestRegister:

    def test_register_creates_student(self, client, session, faculties):
        response = client.post("/api/auth/register", json=_register_body(faculties["science"].faculty_id))

        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["expiresIn"] == config.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert data["user"]["email"] == "nina@uni.edu"
        assert data["user"]["role"] == RoleCode.STUDENT.value
        assert data["user"]["faculty"] == faculties["science"].faculty_id

        user = session.query(User).filter(User.email == "nina@uni.edu").one()
        assert user.role_id == ROLE_IDS[RoleCode.STUDENT]
        assert user.password.startswith("$2")

    def test_missing_field_rejected(self, client, faculties):
        body = _register_body(faculties["science"].faculty_id)
        del body["last_name"]

        response = client.post("/api/auth/register", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == "All fields are required"

    def test_short_password_rejected(self, client, faculties):
        response = client.post(
            "/api/auth/register",
            json=_register_body(faculties["science"].faculty_id, password="short")
        )
        assert response.status_code == 400

    def test_malformed_email_rejected(self, client, faculties):
        response = client.post(
            "/api/auth/register",
            json=_register_body(faculties["science"].faculty_id, email="not-an-email")
        )
        assert response.status_code == 400

    def test_duplicate_email_is_case_insensitive(self, client, student, faculties):
        response = client.post(
            "/api/auth/register",
            json=_register_body(faculties["science"].faculty_id, email="STUDENT@uni.edu")
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Email already in use"

    def test_unknown_faculty_rejected(self, client, faculties):
        response = client.post("/api/auth/register", json=_register_body(9999))
        assert response.status_code == 400


class TestLogin:

    def test_login_returns_token_and_updates_last_login(self, client, session, student):
        response = client.post(
            "/api/auth/login",
            json={"email": "Student@UNI.edu", "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["user"]["id"] == student.user_id
        assert data["user"]["lastLogin"] is not None

        session.expire_all()
        assert session.get(User, student.user_id).last_login is not None
        assert session.query(ActivityLog).filter(
            ActivityLog.user_id == student.user_id, ActivityLog.action_type == "Login"
        ).count() == 1

    def test_wrong_password(self, client, student):
        response = client.post("/api/auth/login", json={"email": "student@uni.edu", "password": "wrongpass1"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_unknown_email(self, client, db):
        response = client.post("/api/auth/login", json={"email": "ghost@uni.edu", "password": TEST_PASSWORD})
        assert response.status_code == 401

    def test_inactive_account(self, client, session, student):
        student.is_active = False
        session.commit()

        response = client.post("/api/auth/login", json={"email": "student@uni.edu", "password": TEST_PASSWORD})
        assert response.status_code == 401

    def test_legacy_plaintext_password_is_rehashed(self, client, session, faculties):
        user = make_user(session, RoleCode.STUDENT, "legacy@uni.edu", faculties["arts"])
        user.password = "oldplaintext"
        session.commit()

        response = client.post("/api/auth/login", json={"email": "legacy@uni.edu", "password": "oldplaintext"})

        assert response.status_code == 200
        session.expire_all()
        assert session.get(User, user.user_id).password.startswith("$2")

    def test_overlong_password_is_rejected(self, client, student):
        response = client.post("/api/auth/login", json={"email": "student@uni.edu", "password": "x" * 100})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_overlong_legacy_password_logs_in_without_rehash(self, client, session, faculties):
        long_password = "p" * 80
        user = make_user(session, RoleCode.STUDENT, "longlegacy@uni.edu", faculties["arts"])
        user.password = long_password
        session.commit()

        response = client.post("/api/auth/login", json={"email": "longlegacy@uni.edu", "password": long_password})

        assert response.status_code == 200
        session.expire_all()
        assert session.get(User, user.user_id).password == long_password


class TestRequestAuthentication:

    def test_missing_token(self, client, db):
        response = client.get("/api/users/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    def test_invalid_token(self, client, db):
        response = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 403
        assert response.json()["detail"] == "Invalid or expired token"

    def test_expired_token(self, client, student):
        token = create_access_token(
            {"userId": student.user_id, "role": "STUD"},
            config.SECRET_KEY,
            expires_delta=timedelta(minutes=-5)
        )
        response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_token_for_deleted_user(self, client, session, student):
        headers = auth_header_for(student)
        session.delete(student)
        session.commit()

        response = client.get("/api/users/me", headers=headers)
        assert response.status_code == 401

    def test_role_gates(self, client, student_headers):
        assert client.get("/api/admin/dashboard/stats", headers=student_headers).json()["detail"] == \
            "Administrator access required"
        assert client.get("/api/manager/dashboard/stats", headers=student_headers).json()["detail"] == \
            "Marketing Manager access required"
        assert client.get("/api/coordinator/dashboard/stats", headers=student_headers).json()["detail"] == \
            "Faculty Coordinator access required"

    def test_role_is_read_from_database(self, client, session, student, student_headers):
        student.role_id = ROLE_IDS[RoleCode.ADMIN]
        session.commit()

        response = client.get("/api/admin/dashboard/stats", headers=student_headers)
        assert response.status_code == 200


class TestUsersMe:

    def test_me(self, client, student, student_headers):
        response = client.get("/api/users/me", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "student@uni.edu"
        assert data["faculty_name"] == "Faculty of Science"
        assert data["role"] == "STUD"

    def test_update_profile(self, client, student_headers):
        response = client.patch(
            "/api/users/profile",
            json={"first_name": "Samuel", "last_name": "Scholar"},
            headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()["user"]["first_name"] == "Samuel"
        assert response.json()["user"]["last_name"] == "Scholar"

    def test_change_password(self, client, student_headers):
        response = client.patch(
            "/api/users/settings",
            json={"current_password": TEST_PASSWORD, "new_password": "brandnewpass"},
            headers=student_headers
        )
        assert response.status_code == 200

        login = client.post("/api/auth/login", json={"email": "student@uni.edu", "password": "brandnewpass"})
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, student_headers):
        response = client.patch(
            "/api/users/settings",
            json={"current_password": "notmypassword", "new_password": "brandnewpass"},
            headers=student_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"

    def test_change_password_overlong_current(self, client, student_headers):
        response = client.patch(
            "/api/users/settings",
            json={"current_password": "x" * 100, "new_password": "brandnewpass"},
            headers=student_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"

    def test_change_password_too_short(self, client, student_headers):
        response = client.patch(
            "/api/users/settings",
            json={"current_password": TEST_PASSWORD, "new_password": "short"},
            headers=student_headers
        )
        assert response.status_code == 400

    def test_store_notification_settings(self, client, student_headers):
        response = client.patch(
            "/api/users/settings",
            json={"notifications": {"comment_notifications": False}},
            headers=student_headers
        )

        assert response.status_code == 200
        notifications = response.json()["notifications"]
        assert notifications["comment_notifications"] is False
        assert notifications["email_notifications"] is True
