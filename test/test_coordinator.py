"""
Faculty coordinator endpoints.
"""
from database.models import ActivityLog, Comment, Submission, SubmissionStatus, RoleCode
from conftest import make_user, make_submission, auth_header_for


class TestCoordinatorScope:

    def test_dashboard_counts_own_faculty(self, client, session, storage, student, other_student,
                                          coordinator_headers):
        make_submission(session, storage, student, "One")
        make_submission(session, storage, student, "Two", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, student, "Three", status=SubmissionStatus.REJECTED)
        make_submission(session, storage, other_student, "Arts piece")

        data = client.get("/api/coordinator/dashboard/stats", headers=coordinator_headers).json()

        assert data == {
            "facultyName": "Faculty of Science",
            "totalSubmissions": 3,
            "pendingSubmissions": 1,
            "selectedSubmissions": 1,
            "rejectedSubmissions": 1,
            "totalContributors": 1,
        }

    def test_list_is_scoped_and_filtered(self, client, session, storage, student, other_student,
                                         coordinator_headers):
        make_submission(session, storage, student, "Science draft")
        make_submission(session, storage, student, "Science pick", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, other_student, "Arts piece")

        everything = client.get("/api/coordinator/submissions", headers=coordinator_headers).json()
        selected = client.get(
            "/api/coordinator/submissions", params={"status": "Selected"}, headers=coordinator_headers
        ).json()

        assert everything["total"] == 2
        assert {s["title"] for s in everything["submissions"]} == {"Science draft", "Science pick"}
        assert all(s["comment_count"] == 0 for s in everything["submissions"])
        assert [s["title"] for s in selected["submissions"]] == ["Science pick"]

    def test_invalid_status_filter(self, client, coordinator_headers):
        response = client.get(
            "/api/coordinator/submissions", params={"status": "Pending"}, headers=coordinator_headers
        )
        assert response.status_code == 400

    def test_other_faculty_submission_denied(self, client, session, storage, other_student,
                                             coordinator_headers):
        submission = make_submission(session, storage, other_student, "Arts piece")

        response = client.get(
            f"/api/coordinator/submissions/{submission.submission_id}", headers=coordinator_headers
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to access this submission"

    def test_unknown_submission(self, client, coordinator_headers):
        response = client.get("/api/coordinator/submissions/999", headers=coordinator_headers)
        assert response.status_code == 404

    def test_coordinator_without_faculty(self, client, session, db):
        unassigned = make_user(session, RoleCode.COORDINATOR, "unassigned@uni.edu")

        response = client.get("/api/coordinator/dashboard/stats", headers=auth_header_for(unassigned))

        assert response.status_code == 403
        assert response.json()["detail"] == \
            "Your account is not assigned to a faculty. Please contact the administrator."


class TestCoordinatorReview:

    def test_comment_flow(self, client, session, storage, student, coordinator_headers):
        submission = make_submission(session, storage, student, "Review me")

        created = client.post(
            f"/api/coordinator/submissions/{submission.submission_id}/comments",
            json={"comment_text": "  Please shorten the intro.  "},
            headers=coordinator_headers
        )
        listed = client.get(
            f"/api/coordinator/submissions/{submission.submission_id}/comments", headers=coordinator_headers
        ).json()

        assert created.status_code == 201
        assert created.json()["comment"]["comment_text"] == "Please shorten the intro."
        assert [c["comment_text"] for c in listed] == ["Please shorten the intro."]
        assert listed[0]["first_name"] == "Cora"
        assert session.query(ActivityLog).filter(ActivityLog.action_type == "Comment").count() == 1

        rows = client.get("/api/coordinator/submissions", headers=coordinator_headers).json()["submissions"]
        assert rows[0]["comment_count"] == 1

    def test_empty_comment_rejected(self, client, session, storage, student, coordinator_headers):
        submission = make_submission(session, storage, student, "Review me")

        response = client.post(
            f"/api/coordinator/submissions/{submission.submission_id}/comments",
            json={"comment_text": "   "},
            headers=coordinator_headers
        )

        assert response.status_code == 400
        assert session.query(Comment).count() == 0

    def test_select_then_reject(self, client, session, storage, student, coordinator_headers):
        submission = make_submission(session, storage, student, "Review me")
        url = f"/api/coordinator/submissions/{submission.submission_id}/status"

        selected = client.patch(url, json={"status": "Selected"}, headers=coordinator_headers)
        assert selected.status_code == 200
        assert selected.json()["submission"]["selected"] is True

        rejected = client.patch(url, json={"status": "Rejected"}, headers=coordinator_headers)
        assert rejected.json()["submission"]["status"] == "Rejected"
        assert rejected.json()["submission"]["selected"] is False

        session.expire_all()
        stored = session.get(Submission, submission.submission_id)
        assert stored.status == SubmissionStatus.REJECTED
        assert stored.selected is False

    def test_invalid_status_rejected(self, client, session, storage, student, coordinator_headers):
        submission = make_submission(session, storage, student, "Review me")

        response = client.patch(
            f"/api/coordinator/submissions/{submission.submission_id}/status",
            json={"status": "Published"},
            headers=coordinator_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Valid status is required (Selected, Rejected, or Submitted)"

    def test_cannot_review_other_faculty(self, client, session, storage, other_student, coordinator_headers):
        submission = make_submission(session, storage, other_student, "Arts piece")

        response = client.patch(
            f"/api/coordinator/submissions/{submission.submission_id}/status",
            json={"status": "Selected"},
            headers=coordinator_headers
        )

        assert response.status_code == 403
        session.expire_all()
        assert session.get(Submission, submission.submission_id).selected is False


class TestCoordinatorFaculty:

    def test_students_with_counts(self, client, session, storage, student, other_student, faculties,
                                  coordinator_headers):
        quiet = make_user(session, RoleCode.STUDENT, "quiet@uni.edu", faculties["science"],
                          first_name="Quinn", last_name="Quiet")
        make_submission(session, storage, student, "One")
        make_submission(session, storage, student, "Two", status=SubmissionStatus.SELECTED)

        rows = client.get("/api/coordinator/students", headers=coordinator_headers).json()

        counts = {row["email"]: (row["submission_count"], row["selected_count"]) for row in rows}
        assert counts == {quiet.email: (0, 0), "student@uni.edu": (2, 1)}

    def test_recent_activity_of_faculty_members(self, client, session, student, other_student,
                                                coordinator_headers):
        session.add_all([
            ActivityLog(user_id=student.user_id, action_type="Login", action_details="science member"),
            ActivityLog(user_id=other_student.user_id, action_type="Login", action_details="arts member"),
            ActivityLog(user_id=None, action_type="Public Download", action_details="anonymous"),
        ])
        session.commit()

        rows = client.get("/api/coordinator/activity/recent", headers=coordinator_headers).json()

        assert [row["action_details"] for row in rows] == ["science member"]
