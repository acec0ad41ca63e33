"""
Export of selected submissions as a ZIP archive, and of publication statistics as JSON.
"""
import json
import tempfile
import time
import zipfile
from datetime import datetime
from typing import Optional, List, Tuple, IO

from sqlalchemy.orm import Session

from database.models import Submission
from core.exceptions import NotFoundError
from core.validators import archive_safe_name
from services.submission_service import base_query
from services.stats_service import StatsService
from storage.local_storage import LocalStorage
from core.logger import logger

# Archives above this size spill from memory to disk
SPOOL_MAX_SIZE = 16 * 1024 * 1024


def archive_entry_name(submission: Submission) -> str:
    """<faculty>/<First_Last>-<Title>.<file_type> with unsafe characters replaced."""
    author = submission.author
    faculty = archive_safe_name(submission.faculty.faculty_name if submission.faculty else "unknown")
    author_name = archive_safe_name(f"{author.first_name}_{author.last_name}" if author else "unknown")
    title = archive_safe_name(submission.title or "untitled")
    return f"{faculty}/{author_name}-{title}.{submission.file_type}"


def archive_metadata(submissions: List[Submission]) -> List[dict]:
    return [
        {
            "id": s.submission_id,
            "title": s.title,
            "author": s.author.full_name if s.author else None,
            "faculty": s.faculty.faculty_name if s.faculty else None,
            "file_type": s.file_type,
        }
        for s in submissions
    ]


def archive_readme(count: int, generated_at: datetime) -> str:
    return (
        "# Selected Magazine Submissions\n\n"
        f"This archive contains {count} selected submissions.\n\n"
        f"Generated on: {generated_at.isoformat()}\n\n"
        "## Structure\n\n"
        "- Files are organized by faculty\n"
        "- Each file is named as: AuthorName-SubmissionTitle.extension\n"
        "- metadata.json contains details of every submission\n"
    )


def build_archive(submissions: List[Submission], storage: LocalStorage) -> Tuple[IO[bytes], int, int]:
    """
    Write the submissions' files plus metadata.json and README.md into a ZIP.

    Submissions whose file is missing are left out and counted as failed;
    they still appear in metadata.json.

    Returns:
        (archive file positioned at the start, processed count, failed count)
    """
    archive = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
    processed = failed = 0
    used_names = set()

    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for submission in submissions:
            path = storage.resolve(submission.file_path)
            if path is None or not path.is_file():
                logger.warning(f"Skipping missing file for submission {submission.submission_id}: {submission.file_path}")
                failed += 1
                continue
            name = archive_entry_name(submission)
            if name in used_names:
                stem, _, ext = name.rpartition(".")
                name = f"{stem}_{submission.submission_id}.{ext}"
            used_names.add(name)
            zf.write(path, arcname=name)
            processed += 1

        zf.writestr("metadata.json", json.dumps(archive_metadata(submissions), indent=2))
        zf.writestr("README.md", archive_readme(len(submissions), datetime.utcnow()))

    archive.seek(0)
    return archive, processed, failed


def iter_file(fileobj: IO[bytes], chunk_size: int = 64 * 1024):
    """Yield a file in chunks and close it afterwards."""
    try:
        while True:
            chunk = fileobj.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        fileobj.close()


class ExportService:
    """Manager exports."""

    @staticmethod
    def selected_submissions(db: Session, submission_ids: Optional[List[int]] = None) -> List[Submission]:
        """
        Selected submissions to export: the given ids, or all of them.

        Raises:
            NotFoundError: nothing selected matches
        """
        query = base_query(db).filter(Submission.selected.is_(True))
        if submission_ids:
            query = query.filter(Submission.submission_id.in_(submission_ids))
        submissions = query.order_by(Submission.submission_id.asc()).all()
        if not submissions:
            raise NotFoundError("No selected submissions found")
        return submissions

    @staticmethod
    def archive_filename() -> str:
        return f"selected-submissions-{int(time.time() * 1000)}.zip"

    @staticmethod
    def publication_stats(db: Session) -> dict:
        """Everything the manager dashboards show, in one document."""
        return {
            "timestamp": datetime.utcnow().isoformat(),
            "overview": StatsService.manager_overview(db),
            "facultyStats": StatsService.faculty_stats(db),
            "contributorStats": StatsService.contributors(db),
            "documentTypes": StatsService.document_types(db),
            "trends": {
                "yearly": StatsService.trends(db, "year"),
                "monthly": StatsService.trends(db, "month"),
            },
        }

    @staticmethod
    def stats_filename() -> str:
        return f"publication-stats-{int(time.time() * 1000)}.json"
