"""
Author notification emails sent on review comments and selection.
"""
import pytest

from app import app
from database.models import ActivityLog, Comment, SubmissionStatus
from services.settings_service import SettingsService
from conftest import make_submission


class RecordingMail:
    """Stands in for FastMail and keeps every message it is asked to send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_message(self, message, template_name=None):
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append(message)


@pytest.fixture
def mail(monkeypatch):
    recorder = RecordingMail()
    monkeypatch.setattr(app.state, "mail", recorder, raising=False)
    return recorder


@pytest.fixture
def failing_mail(monkeypatch):
    recorder = RecordingMail(fail=True)
    monkeypatch.setattr(app.state, "mail", recorder, raising=False)
    return recorder


def _comment(client, headers, submission, role="coordinator"):
    return client.post(
        f"/api/{role}/submissions/{submission.submission_id}/comments",
        json={"comment_text": "Lovely piece"},
        headers=headers
    )


def _set_status(client, headers, submission, new_status, role="admin"):
    return client.patch(
        f"/api/{role}/submissions/{submission.submission_id}/status",
        json={"status": new_status},
        headers=headers
    )


class TestCommentNotification:

    def test_author_is_emailed(self, client, session, storage, student, coordinator_headers, mail):
        submission = make_submission(session, storage, student, "Harbour Lights")

        response = _comment(client, coordinator_headers, submission)

        assert response.status_code == 201
        assert len(mail.sent) == 1
        assert mail.sent[0].subject == 'New comment on "Harbour Lights"'
        assert "Lovely piece" in mail.sent[0].body

    def test_comment_notifications_disabled(self, client, session, storage, student, coordinator_headers, mail):
        SettingsService.put_user_settings(session, student.user_id, "notifications",
                                          {"comment_notifications": False})
        submission = make_submission(session, storage, student, "Harbour Lights")

        assert _comment(client, coordinator_headers, submission).status_code == 201
        assert mail.sent == []

    def test_email_notifications_disabled(self, client, session, storage, student, admin_headers, mail):
        SettingsService.put_user_settings(session, student.user_id, "notifications",
                                          {"email_notifications": False})
        submission = make_submission(session, storage, student, "Harbour Lights")

        assert _comment(client, admin_headers, submission, role="admin").status_code == 201
        assert mail.sent == []

    def test_no_email_for_own_submission(self, client, session, storage, coordinator, coordinator_headers, mail):
        submission = make_submission(session, storage, coordinator, "Editor's Note")

        assert _comment(client, coordinator_headers, submission).status_code == 201
        assert mail.sent == []

    def test_send_failure_keeps_the_comment(self, client, session, storage, student, coordinator_headers,
                                            failing_mail):
        submission = make_submission(session, storage, student, "Harbour Lights")

        response = _comment(client, coordinator_headers, submission)

        assert response.status_code == 201
        assert session.query(Comment).count() == 1
        assert session.query(ActivityLog).filter(ActivityLog.action_type == "Comment").count() == 1


class TestSelectionNotification:

    def test_author_is_emailed_once_on_selection(self, client, session, storage, student, admin_headers, mail):
        submission = make_submission(session, storage, student, "Harbour Lights")

        first = _set_status(client, admin_headers, submission, "Selected")
        again = _set_status(client, admin_headers, submission, "Selected")

        assert first.status_code == again.status_code == 200
        assert [m.subject for m in mail.sent] == ['Your submission "Harbour Lights" was selected']

    def test_other_statuses_send_nothing(self, client, session, storage, student, coordinator_headers, mail):
        submission = make_submission(session, storage, student, "Harbour Lights")

        assert _set_status(client, coordinator_headers, submission, "Rejected", role="coordinator").status_code == 200
        assert mail.sent == []

    def test_coordinator_selection_notifies(self, client, session, storage, student, coordinator_headers, mail):
        submission = make_submission(session, storage, student, "Harbour Lights")

        _set_status(client, coordinator_headers, submission, "Selected", role="coordinator")

        assert len(mail.sent) == 1

    def test_reselecting_after_rejection_notifies_again(self, client, session, storage, student,
                                                         admin_headers, mail):
        submission = make_submission(session, storage, student, "Harbour Lights", status=SubmissionStatus.SELECTED)

        _set_status(client, admin_headers, submission, "Selected")
        _set_status(client, admin_headers, submission, "Rejected")
        _set_status(client, admin_headers, submission, "Selected")

        assert len(mail.sent) == 1

    def test_selection_notifications_disabled(self, client, session, storage, student, admin_headers, mail):
        SettingsService.put_user_settings(session, student.user_id, "notifications",
                                          {"selection_notifications": False})
        submission = make_submission(session, storage, student, "Harbour Lights")

        assert _set_status(client, admin_headers, submission, "Selected").status_code == 200
        assert mail.sent == []

    def test_send_failure_keeps_the_status(self, client, session, storage, student, admin_headers, failing_mail):
        submission = make_submission(session, storage, student, "Harbour Lights")

        response = _set_status(client, admin_headers, submission, "Selected")

        assert response.status_code == 200
        assert response.json()["submission"]["selected"] is True
