"""
Submission service: role scoping, the shared download policy, review actions.
"""
import math
from pathlib import Path
from typing import Optional, List, Dict, Iterable
from urllib.parse import quote

from fastapi import Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, Query, contains_eager

from database.models import (
    User, Submission, Comment, SubmissionStatus, RoleCode, normalize_role
)
from core.exceptions import ValidationError, AccessDeniedError, NotFoundError
from core.validators import (
    sanitize_filename, file_type_for, content_type_for, validate_mime_type, validate_file_size
)
from services.activity_service import ActivityService
from storage.local_storage import LocalStorage
from core.logger import logger
import config

INVALID_FILE_TYPE_MESSAGE = "Invalid file type. Only DOC, DOCX, PDF, JPG, JPEG, and PNG files are allowed."
ACCESS_DENIED_MESSAGE = "You do not have permission to access this submission"


# ============================================================================
# Download policy
# ============================================================================

def can_download(user: User, submission: Submission) -> bool:
    """
    Whether the user may read the submission's file.

    admin: everything; manager: selected only; coordinator: own faculty only;
    student: own submissions only.
    """
    role = normalize_role(user.role_id)
    if role == RoleCode.ADMIN:
        return True
    if role == RoleCode.MANAGER:
        return bool(submission.selected)
    if role == RoleCode.COORDINATOR:
        return user.faculty_id is not None and submission.faculty_id == user.faculty_id
    if role == RoleCode.STUDENT:
        return submission.user_id == user.user_id
    return False


def content_disposition(title: str, file_type: str, preview: bool = False) -> str:
    """attachment (or inline) header with the URL-encoded title as the filename."""
    disposition = "inline" if preview else "attachment"
    encoded = quote(title or "submission", safe="-_.!~*'()")
    return f'{disposition}; filename="{encoded}.{file_type}"'


# ============================================================================
# Serialization
# ============================================================================

def _iso(value):
    return value.isoformat() if value else None


def serialize_submission(submission: Submission, comment_count: Optional[int] = None) -> dict:
    """Row shape shared by every submission listing."""
    author = submission.author
    data = {
        "submission_id": submission.submission_id,
        "user_id": submission.user_id,
        "faculty_id": submission.faculty_id,
        "title": submission.title,
        "description": submission.description,
        "file_path": submission.file_path,
        "file_type": submission.file_type,
        "original_filename": submission.original_filename,
        "academic_year": submission.academic_year,
        "status": submission.status.value if isinstance(submission.status, SubmissionStatus) else submission.status,
        "selected": submission.selected,
        "terms_accepted": submission.terms_accepted,
        "submitted_at": _iso(submission.submitted_at),
        "last_updated": _iso(submission.last_updated),
        "first_name": author.first_name if author else None,
        "last_name": author.last_name if author else None,
        "email": author.email if author else None,
        "faculty_name": submission.faculty.faculty_name if submission.faculty else None,
    }
    if comment_count is not None:
        data["comment_count"] = comment_count
    return data


def serialize_comment(comment: Comment) -> dict:
    author = comment.author
    return {
        "comment_id": comment.comment_id,
        "submission_id": comment.submission_id,
        "user_id": comment.user_id,
        "comment_text": comment.comment_text,
        "commented_at": _iso(comment.commented_at),
        "is_read": comment.is_read,
        "first_name": author.first_name if author else None,
        "last_name": author.last_name if author else None,
        "role_id": author.role_id if author else None,
    }


# ============================================================================
# Queries
# ============================================================================

def base_query(db: Session) -> Query:
    """Submissions joined with author and faculty."""
    return (
        db.query(Submission)
        .join(Submission.author)
        .join(Submission.faculty)
        .options(contains_eager(Submission.author), contains_eager(Submission.faculty))
    )


def scope_for_user(query: Query, user: User) -> Query:
    """Restrict a submission query to what the user's role may list."""
    role = normalize_role(user.role_id)
    if role == RoleCode.ADMIN:
        return query
    if role == RoleCode.MANAGER:
        return query.filter(Submission.status == SubmissionStatus.SELECTED)
    if role == RoleCode.COORDINATOR:
        return query.filter(Submission.faculty_id == user.faculty_id)
    return query.filter(Submission.user_id == user.user_id)


def apply_filters(
    query: Query,
    faculty: Optional[int] = None,
    status: Optional[str] = None,
    academic_year: Optional[str] = None,
    search: Optional[str] = None,
    search_authors: bool = False
) -> Query:
    """Apply the optional list filters shared by the submission endpoints."""
    if faculty:
        query = query.filter(Submission.faculty_id == faculty)
    if status:
        try:
            query = query.filter(Submission.status == SubmissionStatus(status))
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")
    if academic_year:
        query = query.filter(Submission.academic_year == academic_year)
    if search:
        pattern = f"%{search}%"
        conditions = [Submission.title.ilike(pattern), Submission.description.ilike(pattern)]
        if search_authors:
            conditions += [User.first_name.ilike(pattern), User.last_name.ilike(pattern)]
        query = query.filter(or_(*conditions))
    return query


def comment_counts(db: Session, submission_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(submission_ids)
    if not ids:
        return {}
    rows = (
        db.query(Comment.submission_id, func.count(Comment.comment_id))
        .filter(Comment.submission_id.in_(ids))
        .group_by(Comment.submission_id)
        .all()
    )
    return {submission_id: count for submission_id, count in rows}


def paginate(
    db: Session,
    query: Query,
    page: int,
    limit: int,
    with_comment_count: bool = False
) -> dict:
    """
    Page through an ordered submission query.

    Returns:
        {"submissions", "total", "page", "limit", "totalPages"}
    """
    total = query.order_by(None).count()
    items = (
        query.order_by(Submission.submitted_at.desc(), Submission.submission_id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    counts = comment_counts(db, [s.submission_id for s in items]) if with_comment_count else None
    return {
        "submissions": [
            serialize_submission(s, counts.get(s.submission_id, 0) if counts is not None else None)
            for s in items
        ],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def list_all(query: Query) -> List[dict]:
    """Unpaginated listing, newest first."""
    items = query.order_by(Submission.submitted_at.desc(), Submission.submission_id.desc()).all()
    return [serialize_submission(s) for s in items]


class SubmissionService:
    """Review and file operations on submissions."""

    @staticmethod
    def get(db: Session, submission_id: int) -> Submission:
        submission = db.query(Submission).filter(Submission.submission_id == submission_id).first()
        if submission is None:
            raise NotFoundError("Submission not found")
        return submission

    @staticmethod
    def get_for_user(db: Session, user: User, submission_id: int) -> Submission:
        """
        Fetch a submission the user may access.

        Raises:
            NotFoundError: unknown submission
            AccessDeniedError: the download policy refuses it
        """
        submission = SubmissionService.get(db, submission_id)
        if not can_download(user, submission):
            logger.warning(f"User {user.user_id} denied access to submission {submission_id}")
            raise AccessDeniedError(ACCESS_DENIED_MESSAGE)
        return submission

    @staticmethod
    def resolve_file(submission: Submission, storage: LocalStorage) -> Path:
        path = storage.resolve(submission.file_path)
        if path is None or not path.is_file():
            logger.error(f"File not found for submission {submission.submission_id}: {submission.file_path}")
            raise NotFoundError("File not found")
        return path

    @staticmethod
    def create(
        db: Session,
        user: User,
        upload: Optional[UploadFile],
        title: Optional[str],
        description: Optional[str],
        academic_year: Optional[str],
        terms_accepted: Optional[str],
        storage: LocalStorage
    ) -> Submission:
        """
        Validate an upload, store it under the user's directory and record it.

        The stored file is removed again when any later check fails.
        """
        if upload is not None and upload.filename:
            if not validate_mime_type(upload.content_type, config.ALLOWED_UPLOAD_MIME_TYPES):
                raise ValidationError(INVALID_FILE_TYPE_MESSAGE)

            upload.file.seek(0, 2)
            file_size = upload.file.tell()
            upload.file.seek(0)
            is_valid_size, size_error = validate_file_size(file_size, config.MAX_UPLOAD_SIZE_MB * 1024 * 1024)
            if not is_valid_size:
                raise ValidationError(size_error)

        if not upload or not upload.filename or not (title or "").strip() or not (academic_year or "").strip():
            raise ValidationError("Title, file and academic year are required")

        try:
            original_name = sanitize_filename(upload.filename)
        except ValueError as e:
            raise ValidationError(f"Invalid filename: {e}")

        relative_path = storage.save_upload(upload.file, user.user_id, Path(original_name).suffix)
        try:
            if terms_accepted is not None and str(terms_accepted).strip().lower() in ("false", "0", "no", "off", ""):
                raise ValidationError("Terms and conditions must be accepted")
            if user.faculty_id is None:
                raise NotFoundError("User not found or faculty information missing")

            submission = Submission(
                user_id=user.user_id,
                faculty_id=user.faculty_id,
                title=title.strip(),
                description=(description or "").strip() or None,
                file_path=relative_path,
                file_type=file_type_for(original_name),
                original_filename=original_name,
                academic_year=academic_year.strip(),
                status=SubmissionStatus.SUBMITTED,
                selected=False,
                terms_accepted=True,
            )
            db.add(submission)
            db.commit()
        except Exception:
            db.rollback()
            storage.delete(relative_path)
            logger.info(f"Deleted file after submission failure: {relative_path}")
            raise
        db.refresh(submission)
        logger.info(f"User {user.user_id} created submission {submission.submission_id}")
        return submission

    @staticmethod
    def list_comments(db: Session, submission_id: int) -> List[dict]:
        comments = (
            db.query(Comment)
            .filter(Comment.submission_id == submission_id)
            .order_by(Comment.commented_at.desc(), Comment.comment_id.desc())
            .all()
        )
        return [serialize_comment(c) for c in comments]

    @staticmethod
    def add_comment(db: Session, submission: Submission, user: User, comment_text: Optional[str]) -> Comment:
        if not comment_text or not comment_text.strip():
            raise ValidationError("Comment text is required")
        comment = Comment(
            submission_id=submission.submission_id,
            user_id=user.user_id,
            comment_text=comment_text.strip(),
            is_read=False,
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    @staticmethod
    def update_status(db: Session, submission: Submission, status: Optional[str]) -> Submission:
        """Set the review status; selected follows it."""
        try:
            new_status = SubmissionStatus(status)
        except ValueError:
            raise ValidationError("Valid status is required (Selected, Rejected, or Submitted)")
        submission.set_status(new_status)
        db.commit()
        db.refresh(submission)
        logger.info(f"Submission {submission.submission_id} status set to {new_status.value}")
        return submission

    @staticmethod
    def status_payload(submission: Submission) -> dict:
        return {
            "submission_id": submission.submission_id,
            "title": submission.title,
            "status": submission.status.value,
            "selected": submission.selected,
            "last_updated": _iso(submission.last_updated),
        }



def send_submission_file(
    db: Session,
    request: Request,
    submission: Submission,
    storage: LocalStorage,
    user_id: Optional[int],
    preview: bool = False,
    action_type: Optional[str] = None
) -> FileResponse:
    """
    Stream a submission's file and record the access.

    Raises:
        NotFoundError: the file is gone from disk
    """
    path = SubmissionService.resolve_file(submission, storage)
    verb = "Previewed" if preview else "Downloaded"
    ActivityService.log_from_request(
        db=db,
        request=request,
        action_type=action_type or ("Preview" if preview else "Download"),
        action_details=f'{verb} submission file for "{submission.title}"',
        user_id=user_id,
    )
    return FileResponse(
        path,
        media_type=content_type_for(submission.file_type),
        headers={"Content-Disposition": content_disposition(submission.title, submission.file_type, preview)},
    )
