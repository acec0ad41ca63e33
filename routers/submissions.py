"""
Submission endpoints shared by every authenticated role.
"""
from fastapi import APIRouter, Depends, Request, Query, Form, File, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional

from database.models import User, RoleCode, normalize_role
from auth.dependencies import get_current_user, get_db_session
from services.submission_service import (
    SubmissionService, base_query, scope_for_user, apply_filters, list_all,
    serialize_submission, send_submission_file
)
from services.activity_service import ActivityService
from storage.local_storage import LocalStorage, get_storage


router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.get("")
async def list_submissions(
    faculty: Optional[int] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    """
    Submissions visible to the caller, newest first.

    Admins see everything (and may filter by faculty), managers the selected
    submissions, coordinators their faculty and students their own.
    """
    if normalize_role(current_user.role_id) != RoleCode.ADMIN:
        faculty = None
    query = scope_for_user(base_query(db), current_user)
    query = apply_filters(query, faculty=faculty, academic_year=academic_year, search=search)
    return list_all(query)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_submission(
    request: Request,
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    academic_year: Optional[str] = Form(None, alias="academicYear"),
    terms_accepted: Optional[str] = Form(None, alias="termsAccepted"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """Upload a new article or image (multipart/form-data)."""
    submission = SubmissionService.create(
        db=db,
        user=current_user,
        upload=file,
        title=title,
        description=description,
        academic_year=academic_year,
        terms_accepted=terms_accepted,
        storage=storage,
    )

    ActivityService.log_from_request(
        db=db,
        request=request,
        action_type="Submission",
        action_details=f'Created new submission: "{submission.title}"',
        user_id=current_user.user_id,
    )

    return {
        "message": "Submission created successfully",
        "submission": serialize_submission(submission),
    }


@router.get("/{submission_id}/download")
async def download_submission(
    submission_id: int,
    request: Request,
    preview: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """Download a submission file the caller is allowed to read."""
    submission = SubmissionService.get_for_user(db, current_user, submission_id)
    return send_submission_file(db, request, submission, storage, current_user.user_id, preview=preview)
