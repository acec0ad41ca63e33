"""
Marketing manager APIs: selected submissions, ZIP export, statistics and preferences.
"""
import json
from fastapi import APIRouter, Depends, HTTPException, status, Request, Query, Body
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from database.models import User, Submission, RoleCode, normalize_role
from auth.dependencies import require_manager, get_db_session, get_user_from_token
from services.activity_service import ActivityService
from services.submission_service import (
    SubmissionService, base_query, apply_filters, paginate, send_submission_file
)
from services.export_service import ExportService, build_archive, iter_file
from services.settings_service import SettingsService
from services.stats_service import StatsService
from storage.local_storage import LocalStorage, get_storage
from core.logger import logger


router = APIRouter(prefix="/api/manager", tags=["manager"])


class ZipRequest(BaseModel):
    submissionIds: Optional[List[int]] = None


class ActivityLogRequest(BaseModel):
    action_type: Optional[str] = None
    action_details: Optional[str] = None


# ============================================================================
# Dashboard & statistics
# ============================================================================

@router.get("/dashboard/stats")
async def dashboard_stats(
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    return StatsService.manager_overview(db)


@router.get("/stats/overview")
async def stats_overview(
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    return StatsService.manager_overview(db)


@router.get("/faculty-stats")
@router.get("/faculties/stats")
@router.get("/stats/faculties")
async def faculty_stats(
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    """Per-faculty submission, selection and contributor counts."""
    return StatsService.faculty_stats(db)


@router.get("/stats/contributors")
async def contributor_stats(
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    return StatsService.contributors(db, limit=limit)


@router.get("/stats/trends")
async def submission_trends(
    timespan: str = Query("year"),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    """Monthly (last 12 months) submission counts, or yearly (last 5 years) for any other timespan."""
    return StatsService.trends(db, "month" if timespan == "month" else "year")


@router.get("/stats/document-types")
async def document_types(
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    return StatsService.document_types(db)


@router.get("/students-by-faculty")
async def students_by_faculty(
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    return StatsService.students_by_faculty(db)


@router.get("/activity/recent")
async def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    return ActivityService.recent(db, limit=limit, require_user=True)


@router.post("/activity/log", status_code=status.HTTP_201_CREATED)
async def log_activity(
    body: ActivityLogRequest,
    request: Request,
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    if not body.action_type or not body.action_details:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Action type and details are required"
        )
    log = ActivityService.log_from_request(
        db=db, request=request, action_type=body.action_type,
        action_details=body.action_details, user_id=current_user.user_id
    )
    return {"success": log is not None, "log_id": log.log_id if log else None}


@router.get("/export-data")
async def export_data(
    request: Request,
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    """Publication statistics as a downloadable JSON document."""
    data = ExportService.publication_stats(db)
    filename = ExportService.stats_filename()

    ActivityService.log_from_request(
        db=db, request=request, action_type="Data Export",
        action_details="Exported publication statistics", user_id=current_user.user_id
    )
    return Response(
        content=json.dumps(data, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Selected submissions
# ============================================================================

@router.get("/submissions")
async def list_selected_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    faculty: Optional[int] = Query(None),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session)
):
    query = base_query(db).filter(Submission.selected.is_(True))
    query = apply_filters(query, faculty=faculty, academic_year=academic_year, search=search, search_authors=True)
    return paginate(db, query, page, limit)


@router.get("/submissions/{submission_id}/download")
async def download_submission(
    submission_id: int,
    request: Request,
    preview: bool = Query(False),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """Download or preview a selected submission."""
    submission = SubmissionService.get_for_user(db, current_user, submission_id)
    return send_submission_file(db, request, submission, storage, current_user.user_id, preview=preview)


def _zip_response(
    db: Session,
    request: Request,
    user: User,
    submission_ids: Optional[List[int]],
    storage: LocalStorage
) -> StreamingResponse:
    submissions = ExportService.selected_submissions(db, submission_ids)
    archive, processed, failed = build_archive(submissions, storage)
    filename = ExportService.archive_filename()

    ActivityService.log_from_request(
        db=db, request=request, action_type="ZIP Download",
        action_details=f"Downloaded ZIP of {processed} selected submissions ({failed} failed)",
        user_id=user.user_id
    )
    logger.info(f"Manager {user.user_id} exported {processed} submissions, {failed} missing files")
    return StreamingResponse(
        iter_file(archive),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/submissions/download-zip")
async def download_zip(
    request: Request,
    body: Optional[ZipRequest] = Body(None),
    current_user: User = Depends(require_manager),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """ZIP of the requested selected submissions, or of all of them."""
    return _zip_response(db, request, current_user, body.submissionIds if body else None, storage)


@router.get("/download-zip")
async def download_zip_with_token(
    request: Request,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """
    ZIP of all selected submissions for plain browser downloads.
    The access token travels in the query string because no header can be set.
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_user_from_token(token, db)
    if normalize_role(user.role_id) != RoleCode.MANAGER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Marketing Manager access required")
    return _zip_response(db, request, user, None, storage)


# ============================================================================
# Preferences
# ============================================================================

def _settings_routes(kind: str):
    async def get_settings(
        current_user: User = Depends(require_manager),
        db: Session = Depends(get_db_session)
    ):
        return SettingsService.get_user_settings(db, current_user.user_id, kind)

    async def put_settings(
        values: Dict[str, Any] = Body(...),
        current_user: User = Depends(require_manager),
        db: Session = Depends(get_db_session)
    ):
        settings = SettingsService.put_user_settings(db, current_user.user_id, kind, values)
        return {"message": "Settings updated successfully", "settings": settings}

    router.add_api_route(f"/settings/{kind}", get_settings, methods=["GET"], name=f"get_{kind}_settings")
    router.add_api_route(f"/settings/{kind}", put_settings, methods=["PUT"], name=f"put_{kind}_settings")


for _kind in ("notifications", "display", "export"):
    _settings_routes(_kind)
