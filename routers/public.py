"""
Public endpoints (no authentication): academic calendar and published submissions.
"""
from fastapi import APIRouter, Depends, Request, Query
from sqlalchemy.orm import Session
from typing import Optional

from database.models import Submission
from auth.dependencies import get_db_session
from core.exceptions import NotFoundError
from services.submission_service import (
    SubmissionService, base_query, apply_filters, list_all, send_submission_file
)
from services.settings_service import SettingsService, academic_defaults, serialize_academic
from storage.local_storage import LocalStorage, get_storage


router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/academic-settings")
async def get_academic_settings(db: Session = Depends(get_db_session)):
    """Current academic calendar, or the built-in defaults when none is stored."""
    row = SettingsService.get_academic(db)
    if row is None:
        return academic_defaults()
    return serialize_academic(row)


@router.get("/submissions")
async def list_published_submissions(
    faculty: Optional[int] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db_session)
):
    """Selected submissions, newest first."""
    query = base_query(db).filter(Submission.selected.is_(True))
    query = apply_filters(query, faculty=faculty, academic_year=academic_year, search=search)
    return list_all(query)


@router.get("/submissions/{submission_id}/download")
async def download_published_submission(
    submission_id: int,
    request: Request,
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """Download a selected submission. Anything else is reported as not found."""
    submission = SubmissionService.get(db, submission_id)
    if not submission.selected:
        raise NotFoundError("Submission not found")
    return send_submission_file(
        db, request, submission, storage, user_id=None, action_type="Public Download"
    )
