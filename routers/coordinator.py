"""
Faculty coordinator APIs. Every route is scoped to the coordinator's own faculty.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional

from database.models import User, Faculty, Submission
from auth.dependencies import require_coordinator, get_db_session
from services.activity_service import ActivityService
from services.submission_service import (
    SubmissionService, base_query, apply_filters, paginate, serialize_submission,
    serialize_comment, send_submission_file
)
from services.stats_service import StatsService
from services.email_service import EmailService
from storage.local_storage import LocalStorage, get_storage


router = APIRouter(prefix="/api/coordinator", tags=["coordinator"])


class CommentRequest(BaseModel):
    comment_text: Optional[str] = None


class StatusRequest(BaseModel):
    status: Optional[str] = None


def get_coordinator_faculty(
    current_user: User = Depends(require_coordinator),
    db: Session = Depends(get_db_session)
) -> Faculty:
    """The faculty the coordinator manages; 403 when none is assigned."""
    faculty = None
    if current_user.faculty_id is not None:
        faculty = db.query(Faculty).filter(Faculty.faculty_id == current_user.faculty_id).first()
    if faculty is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is not assigned to a faculty. Please contact the administrator."
        )
    return faculty


@router.get("/dashboard/stats")
async def dashboard_stats(
    faculty: Faculty = Depends(get_coordinator_faculty),
    db: Session = Depends(get_db_session)
):
    return StatsService.coordinator_dashboard(db, faculty)


@router.get("/submissions")
async def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    search: Optional[str] = Query(None),
    faculty: Faculty = Depends(get_coordinator_faculty),
    db: Session = Depends(get_db_session)
):
    """Submissions of the coordinator's faculty with comment counts."""
    query = base_query(db).filter(Submission.faculty_id == faculty.faculty_id)
    query = apply_filters(
        query, status=status_filter, academic_year=academic_year, search=search, search_authors=True
    )
    return paginate(db, query, page, limit, with_comment_count=True)


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: int,
    faculty: Faculty = Depends(get_coordinator_faculty),
    current_user: User = Depends(require_coordinator),
    db: Session = Depends(get_db_session)
):
    return serialize_submission(SubmissionService.get_for_user(db, current_user, submission_id))


@router.get("/submissions/{submission_id}/comments")
async def list_comments(
    submission_id: int,
    faculty: Faculty = Depends(get_coordinator_faculty),
    current_user: User = Depends(require_coordinator),
    db: Session = Depends(get_db_session)
):
    SubmissionService.get_for_user(db, current_user, submission_id)
    return SubmissionService.list_comments(db, submission_id)


@router.post("/submissions/{submission_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    submission_id: int,
    body: CommentRequest,
    request: Request,
    faculty: Faculty = Depends(get_coordinator_faculty),
    current_user: User = Depends(require_coordinator),
    db: Session = Depends(get_db_session)
):
    submission = SubmissionService.get_for_user(db, current_user, submission_id)
    comment = SubmissionService.add_comment(db, submission, current_user, body.comment_text)

    ActivityService.log_from_request(
        db=db, request=request, action_type="Comment",
        action_details=f'Added comment to submission "{submission.title}"', user_id=current_user.user_id
    )
    await EmailService.send_comment_notification(
        db, getattr(request.app.state, "mail", None), submission, current_user, comment.comment_text
    )
    return {"message": "Comment added successfully", "comment": serialize_comment(comment)}


@router.patch("/submissions/{submission_id}/status")
async def update_status(
    submission_id: int,
    body: StatusRequest,
    request: Request,
    faculty: Faculty = Depends(get_coordinator_faculty),
    current_user: User = Depends(require_coordinator),
    db: Session = Depends(get_db_session)
):
    submission = SubmissionService.get_for_user(db, current_user, submission_id)
    was_selected = submission.selected
    submission = SubmissionService.update_status(db, submission, body.status)

    ActivityService.log_from_request(
        db=db, request=request, action_type="Status Update",
        action_details=f'Updated submission "{submission.title}" status to {submission.status.value}',
        user_id=current_user.user_id
    )
    if submission.selected and not was_selected:
        await EmailService.send_selection_notification(db, getattr(request.app.state, "mail", None), submission)
    return {"message": "Submission status updated successfully", "submission": SubmissionService.status_payload(submission)}


@router.get("/submissions/{submission_id}/download")
async def download_submission(
    submission_id: int,
    request: Request,
    preview: bool = Query(False),
    faculty: Faculty = Depends(get_coordinator_faculty),
    current_user: User = Depends(require_coordinator),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    submission = SubmissionService.get_for_user(db, current_user, submission_id)
    return send_submission_file(db, request, submission, storage, current_user.user_id, preview=preview)


@router.get("/students")
async def list_students(
    faculty: Faculty = Depends(get_coordinator_faculty),
    db: Session = Depends(get_db_session)
):
    """Students of the faculty with their submission counts."""
    return StatsService.faculty_students(db, faculty.faculty_id)


@router.get("/activity/recent")
async def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    faculty: Faculty = Depends(get_coordinator_faculty),
    db: Session = Depends(get_db_session)
):
    """Recent activity by members of the faculty."""
    return ActivityService.recent(db, limit=limit, faculty_id=faculty.faculty_id)
