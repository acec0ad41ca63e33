"""
Marketing manager endpoints, including the ZIP and statistics exports.
"""
import io
import json
import zipfile

from database.models import ActivityLog, SubmissionStatus, RoleCode
from services.export_service import build_archive, archive_entry_name
from conftest import make_user, make_submission, auth_header_for


def _zip_names(response):
    with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
        return sorted(zf.namelist())


class TestManagerStats:

    def test_overview(self, client, session, storage, student, other_student, manager_headers):
        make_submission(session, storage, student, "One")
        make_submission(session, storage, student, "Two", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, other_student, "Three", status=SubmissionStatus.SELECTED)

        expected = {
            "totalSubmissions": 3,
            "selectedSubmissions": 2,
            "pendingSelections": 1,
            "totalContributors": 2,
        }
        assert client.get("/api/manager/dashboard/stats", headers=manager_headers).json() == expected
        assert client.get("/api/manager/stats/overview", headers=manager_headers).json() == expected

    def test_faculty_stats_aliases(self, client, student, manager_headers):
        paths = ["/api/manager/faculty-stats", "/api/manager/faculties/stats", "/api/manager/stats/faculties"]
        results = [client.get(path, headers=manager_headers) for path in paths]

        assert all(r.status_code == 200 for r in results)
        assert results[0].json() == results[1].json() == results[2].json()

    def test_contributors(self, client, session, storage, student, other_student, manager_headers):
        make_submission(session, storage, student, "One")
        make_submission(session, storage, student, "Two", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, other_student, "Three")

        rows = client.get("/api/manager/stats/contributors", params={"limit": 1}, headers=manager_headers).json()

        assert len(rows) == 1
        assert rows[0]["email"] == "student@uni.edu"
        assert rows[0]["submission_count"] == 2
        assert rows[0]["selected_count"] == 1

    def test_trends_periods(self, client, manager_headers):
        monthly = client.get("/api/manager/stats/trends", params={"timespan": "month"},
                             headers=manager_headers).json()
        yearly = client.get("/api/manager/stats/trends", params={"timespan": "year"},
                            headers=manager_headers).json()

        assert len(monthly) == 12
        assert len(yearly) == 5
        assert all(row["submission_count"] == 0 for row in monthly + yearly)

    def test_trends_default_to_yearly(self, client, manager_headers):
        default = client.get("/api/manager/stats/trends", headers=manager_headers).json()
        unknown = client.get("/api/manager/stats/trends", params={"timespan": "week"},
                             headers=manager_headers).json()

        assert len(default) == 5
        assert all(len(row["period"]) == 4 for row in default)
        assert unknown == default

    def test_document_types(self, client, session, storage, student, manager_headers):
        make_submission(session, storage, student, "A", status=SubmissionStatus.SELECTED, file_type="pdf")
        make_submission(session, storage, student, "B", status=SubmissionStatus.SELECTED, file_type="pdf")
        make_submission(session, storage, student, "C", status=SubmissionStatus.SELECTED, file_type="png")
        make_submission(session, storage, student, "D", file_type="docx")

        rows = client.get("/api/manager/stats/document-types", headers=manager_headers).json()

        assert rows == [
            {"type": "pdf", "count": 2, "percentage": 66.7},
            {"type": "png", "count": 1, "percentage": 33.3},
        ]

    def test_students_by_faculty(self, client, student, other_student, coordinator, manager_headers):
        rows = client.get("/api/manager/students-by-faculty", headers=manager_headers).json()

        counts = {row["faculty_name"]: row["student_count"] for row in rows}
        assert counts == {"Faculty of Arts": 1, "Faculty of Science": 1}

    def test_log_activity_requires_type_and_details(self, client, manager_headers):
        missing = client.post("/api/manager/activity/log", json={"action_type": "View"}, headers=manager_headers)
        ok = client.post(
            "/api/manager/activity/log",
            json={"action_type": "View", "action_details": "Opened trends"},
            headers=manager_headers
        )

        assert missing.status_code == 400
        assert ok.status_code == 201
        assert ok.json()["success"] is True
        assert ok.json()["log_id"]

    def test_export_data(self, client, session, storage, student, manager_headers):
        make_submission(session, storage, student, "A", status=SubmissionStatus.SELECTED)

        response = client.get("/api/manager/export-data", headers=manager_headers)

        assert response.status_code == 200
        assert response.headers["content-disposition"].startswith('attachment; filename="publication-stats-')
        data = json.loads(response.content)
        assert set(data) == {"timestamp", "overview", "facultyStats", "contributorStats", "documentTypes", "trends"}
        assert set(data["trends"]) == {"yearly", "monthly"}
        assert session.query(ActivityLog).filter(ActivityLog.action_type == "Data Export").count() == 1


class TestManagerSubmissions:

    def test_lists_selected_only(self, client, session, storage, student, manager_headers):
        make_submission(session, storage, student, "Draft")
        make_submission(session, storage, student, "Chosen", status=SubmissionStatus.SELECTED)

        data = client.get("/api/manager/submissions", headers=manager_headers).json()

        assert data["total"] == 1
        assert data["submissions"][0]["title"] == "Chosen"

    def test_preview_logs_activity(self, client, session, storage, student, manager_headers):
        submission = make_submission(session, storage, student, "Chosen", status=SubmissionStatus.SELECTED)

        response = client.get(
            f"/api/manager/submissions/{submission.submission_id}/download",
            params={"preview": "true"},
            headers=manager_headers
        )

        assert response.status_code == 200
        assert session.query(ActivityLog).filter(ActivityLog.action_type == "Preview").count() == 1


class TestZipExport:

    def test_zip_of_all_selected(self, client, session, storage, student, other_student, manager_headers):
        make_submission(session, storage, student, "Space & Time!", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, other_student, "Poems", status=SubmissionStatus.SELECTED,
                        file_type="docx", content=b"docx bytes")
        make_submission(session, storage, student, "Not chosen")

        response = client.post("/api/manager/submissions/download-zip", json={}, headers=manager_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"].startswith('attachment; filename="selected-submissions-')
        names = _zip_names(response)
        assert names == [
            "Faculty_of_Arts/Alex_Artist-Poems.docx",
            "Faculty_of_Science/Sam_Student-Space___Time_.pdf",
            "README.md",
            "metadata.json",
        ]

        with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
            metadata = json.loads(zf.read("metadata.json"))
            assert zf.read("Faculty_of_Arts/Alex_Artist-Poems.docx") == b"docx bytes"
            assert "2 selected submissions" in zf.read("README.md").decode()
        assert {m["title"] for m in metadata} == {"Space & Time!", "Poems"}
        assert set(metadata[0]) == {"id", "title", "author", "faculty", "file_type"}

    def test_zip_of_requested_ids(self, client, session, storage, student, manager_headers):
        first = make_submission(session, storage, student, "First", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, student, "Second", status=SubmissionStatus.SELECTED)

        response = client.post(
            "/api/manager/submissions/download-zip",
            json={"submissionIds": [first.submission_id]},
            headers=manager_headers
        )

        names = _zip_names(response)
        assert "Faculty_of_Science/Sam_Student-First.pdf" in names
        assert "Faculty_of_Science/Sam_Student-Second.pdf" not in names

    def test_missing_files_are_skipped_and_counted(self, client, session, storage, student, manager_headers):
        make_submission(session, storage, student, "Present", status=SubmissionStatus.SELECTED)
        make_submission(session, storage, student, "Gone", status=SubmissionStatus.SELECTED, with_file=False)

        response = client.post("/api/manager/submissions/download-zip", json={}, headers=manager_headers)

        names = _zip_names(response)
        assert names == ["Faculty_of_Science/Sam_Student-Present.pdf", "README.md", "metadata.json"]
        log = session.query(ActivityLog).filter(ActivityLog.action_type == "ZIP Download").one()
        assert "1 selected submissions (1 failed)" in log.action_details

    def test_nothing_selected(self, client, session, storage, student, manager_headers):
        make_submission(session, storage, student, "Draft")

        response = client.post("/api/manager/submissions/download-zip", json={}, headers=manager_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "No selected submissions found"

    def test_get_with_query_token(self, client, session, storage, student, manager):
        make_submission(session, storage, student, "Chosen", status=SubmissionStatus.SELECTED)
        token = auth_header_for(manager)["Authorization"].split(" ", 1)[1]

        ok = client.get("/api/manager/download-zip", params={"token": token})
        missing = client.get("/api/manager/download-zip")
        invalid = client.get("/api/manager/download-zip", params={"token": "garbage"})

        assert ok.status_code == 200
        assert ok.headers["content-type"] == "application/zip"
        assert missing.status_code == 401
        assert invalid.status_code == 403

    def test_get_with_token_of_other_role(self, client, session, storage, student):
        token = auth_header_for(student)["Authorization"].split(" ", 1)[1]

        response = client.get("/api/manager/download-zip", params={"token": token})

        assert response.status_code == 403


class TestManagerPreferences:

    def test_defaults(self, client, manager_headers):
        notifications = client.get("/api/manager/settings/notifications", headers=manager_headers).json()
        display = client.get("/api/manager/settings/display", headers=manager_headers).json()
        export = client.get("/api/manager/settings/export", headers=manager_headers).json()

        assert all(notifications.values())
        assert display == {"dark_mode": True, "compact_view": False, "show_statistics": True,
                           "default_view": "submissions"}
        assert export == {"include_comments": True, "include_metadata": True, "default_format": "zip"}

    def test_put_then_get(self, client, manager_headers):
        saved = client.put("/api/manager/settings/display", json={"dark_mode": False}, headers=manager_headers)
        client.put("/api/manager/settings/export", json={"default_format": "pdf"}, headers=manager_headers)

        assert saved.status_code == 200
        display = client.get("/api/manager/settings/display", headers=manager_headers).json()
        export = client.get("/api/manager/settings/export", headers=manager_headers).json()
        assert display["dark_mode"] is False
        assert display["default_view"] == "submissions"
        assert export["default_format"] == "pdf"

    def test_preferences_are_per_user(self, client, session, manager_headers):
        other = make_user(session, RoleCode.MANAGER, "second.manager@uni.edu")
        client.put("/api/manager/settings/display", json={"compact_view": True}, headers=manager_headers)

        display = client.get("/api/manager/settings/display", headers=auth_header_for(other)).json()

        assert display["compact_view"] is False


class TestBuildArchive:

    def test_duplicate_entry_names_get_id_suffix(self, session, storage, student):
        first = make_submission(session, storage, student, "Same", status=SubmissionStatus.SELECTED)
        second = make_submission(session, storage, student, "Same", status=SubmissionStatus.SELECTED)

        archive, processed, failed = build_archive([first, second], storage)

        with zipfile.ZipFile(archive) as zf:
            names = set(zf.namelist())
        archive.close()
        assert (processed, failed) == (2, 0)
        assert "Faculty_of_Science/Sam_Student-Same.pdf" in names
        assert f"Faculty_of_Science/Sam_Student-Same_{second.submission_id}.pdf" in names

    def test_entry_name_replaces_unsafe_characters(self, session, storage, student):
        submission = make_submission(session, storage, student, "Café: Nights?")
        assert archive_entry_name(submission) == "Faculty_of_Science/Sam_Student-Caf___Nights_.pdf"
