"""
Administrator APIs: users, faculties, submissions review, analytics and settings.
All routes require the Administrator role.
"""
import math
from fastapi import APIRouter, Depends, HTTPException, status, Request, Query
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from pydantic import BaseModel
from typing import Optional, Union

from database.models import (
    User, Role, Faculty, Submission, RoleCode, ROLE_IDS, ROLE_NAMES, ROLE_DESCRIPTIONS, normalize_role
)
from auth.dependencies import require_admin, get_db_session
from auth.security import get_password_hash
from services.auth_service import AuthService, serialize_user
from services.activity_service import ActivityService, date_range_start
from services.submission_service import (
    SubmissionService, base_query, apply_filters, paginate, serialize_submission,
    serialize_comment, send_submission_file
)
from services.settings_service import SettingsService, serialize_academic
from services.stats_service import StatsService
from services.email_service import EmailService
from storage.local_storage import LocalStorage, get_storage
from routers.faculties import faculty_info
from core.logger import logger


router = APIRouter(prefix="/api/admin", tags=["admin"])


# Request Models
class FacultyRequest(BaseModel):
    faculty_name: Optional[str] = None
    description: Optional[str] = None


class UserCreateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role_id: Optional[Union[int, str]] = None
    faculty_id: Optional[Union[int, str]] = None


class UserUpdateRequest(BaseModel):
    """All fields optional; the password is only changed when provided."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role_id: Optional[Union[int, str]] = None
    faculty_id: Optional[Union[int, str]] = None
    is_active: Optional[bool] = None


class CommentRequest(BaseModel):
    comment_text: Optional[str] = None


class StatusRequest(BaseModel):
    status: Optional[str] = None


class ActivityLogRequest(BaseModel):
    action_type: Optional[str] = None
    action_details: Optional[str] = None


class AcademicSettingsRequest(BaseModel):
    academic_year: Optional[str] = None
    submission_deadline: Optional[str] = None
    final_edit_deadline: Optional[str] = None
    publication_date: Optional[str] = None


def _role_or_400(value) -> RoleCode:
    role = normalize_role(value)
    if role is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    return role


# ============================================================================
# Dashboard
# ============================================================================

@router.get("/dashboard/stats")
async def dashboard_stats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return StatsService.admin_dashboard(db)


@router.get("/faculties/stats")
async def faculty_stats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Per-faculty submission, selection and contributor counts."""
    return StatsService.faculty_stats(db)


@router.get("/activity/recent")
async def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return ActivityService.recent(db, limit=limit)


@router.post("/activity/log", status_code=status.HTTP_201_CREATED)
async def log_activity(
    body: ActivityLogRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Record a client-side action in the activity log."""
    if not body.action_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Action type is required")
    log = ActivityService.log_from_request(
        db=db, request=request, action_type=body.action_type,
        action_details=body.action_details, user_id=current_user.user_id
    )
    return {"success": log is not None, "log_id": log.log_id if log else None}


# ============================================================================
# Faculties
# ============================================================================

@router.post("/faculties", status_code=status.HTTP_201_CREATED)
async def create_faculty(
    body: FacultyRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    name = (body.faculty_name or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Faculty name is required")
    if db.query(Faculty).filter(func.lower(Faculty.faculty_name) == name.lower()).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Faculty name already exists")

    faculty = Faculty(faculty_name=name, description=(body.description or "").strip() or None)
    db.add(faculty)
    db.commit()
    db.refresh(faculty)

    ActivityService.log_from_request(
        db=db, request=request, action_type="Faculty Created",
        action_details=f"Created faculty: {faculty.faculty_name}", user_id=current_user.user_id
    )
    return {"message": "Faculty created successfully", "faculty": faculty_info(faculty)}


@router.put("/faculties/{faculty_id}")
async def update_faculty(
    faculty_id: int,
    body: FacultyRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    faculty = db.query(Faculty).filter(Faculty.faculty_id == faculty_id).first()
    if not faculty:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Faculty not found")

    name = (body.faculty_name or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Faculty name is required")
    duplicate = db.query(Faculty).filter(
        func.lower(Faculty.faculty_name) == name.lower(),
        Faculty.faculty_id != faculty_id
    ).first()
    if duplicate:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Faculty name already exists")

    faculty.faculty_name = name
    if body.description is not None:
        faculty.description = body.description.strip() or None
    db.commit()
    db.refresh(faculty)

    ActivityService.log_from_request(
        db=db, request=request, action_type="Faculty Updated",
        action_details=f"Updated faculty: {faculty.faculty_name}", user_id=current_user.user_id
    )
    return {"message": "Faculty updated successfully", "faculty": faculty_info(faculty)}


@router.delete("/faculties/{faculty_id}")
async def delete_faculty(
    faculty_id: int,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Delete a faculty that no user or submission references."""
    faculty = db.query(Faculty).filter(Faculty.faculty_id == faculty_id).first()
    if not faculty:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Faculty not found")

    user_count = db.query(func.count(User.user_id)).filter(User.faculty_id == faculty_id).scalar() or 0
    submission_count = db.query(func.count(Submission.submission_id)).filter(
        Submission.faculty_id == faculty_id
    ).scalar() or 0
    if user_count or submission_count:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete faculty with associated users or submissions"
        )

    name = faculty.faculty_name
    db.delete(faculty)
    db.commit()

    ActivityService.log_from_request(
        db=db, request=request, action_type="Faculty Deleted",
        action_details=f"Deleted faculty: {name}", user_id=current_user.user_id
    )
    return {"message": "Faculty deleted successfully"}


# ============================================================================
# Users
# ============================================================================

@router.get("/users")
async def list_users(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Paginated user list, searchable by name and email."""
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
        ))

    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.user_id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    ActivityService.log_from_request(
        db=db, request=request, action_type="View",
        action_details="Viewed user list", user_id=current_user.user_id
    )
    return {
        "users": [serialize_user(u) for u in users],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
    }


@router.get("/users/coordinators")
async def list_coordinators(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    coordinators = (
        db.query(User)
        .filter(User.role_id == ROLE_IDS[RoleCode.COORDINATOR])
        .order_by(User.last_name.asc(), User.first_name.asc())
        .all()
    )
    return [serialize_user(u) for u in coordinators]


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Create an account with any role."""
    if not all([body.first_name, body.last_name, body.email, body.password, body.role_id]):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="All fields are required")
    role = _role_or_400(body.role_id)
    if role in (RoleCode.COORDINATOR, RoleCode.STUDENT) and body.faculty_id in (None, ""):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="All fields are required")

    user = AuthService.create_user(
        db=db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        role=role,
        faculty_id=body.faculty_id,
    )

    ActivityService.log_from_request(
        db=db, request=request, action_type="User Created",
        action_details=f"Created user: {user.email}", user_id=current_user.user_id
    )
    return {"message": "User created successfully", "user": serialize_user(user)}


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    email = body.email.strip().lower() if body.email else user.email
    faculty_id = body.faculty_id if body.faculty_id is not None else user.faculty_id
    faculty = AuthService.check_account_fields(
        db, email, faculty_id, body.password or None,
        exclude_user_id=user.user_id,
        duplicate_message="Email already in use by another user"
    )

    if body.first_name is not None and body.first_name.strip():
        user.first_name = body.first_name.strip()
    if body.last_name is not None and body.last_name.strip():
        user.last_name = body.last_name.strip()
    user.email = email
    user.faculty_id = faculty.faculty_id if faculty else None
    if body.role_id is not None:
        user.role_id = ROLE_IDS[_role_or_400(body.role_id)]
    if body.is_active is not None:
        if user.user_id == current_user.user_id and not body.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot deactivate your own account")
        user.is_active = body.is_active
    if body.password:
        user.password = get_password_hash(body.password)
    db.commit()
    db.refresh(user)

    ActivityService.log_from_request(
        db=db, request=request, action_type="User Updated",
        action_details=f"Updated user: {user.email}", user_id=current_user.user_id
    )
    return {"message": "User updated successfully", "user": serialize_user(user)}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    """Delete a user together with their submissions, comments and uploaded files."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.user_id == current_user.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")

    email = user.email
    db.delete(user)
    db.commit()
    storage.delete_user_dir(user_id)

    ActivityService.log_from_request(
        db=db, request=request, action_type="User Deleted",
        action_details=f"Deleted user: {email}", user_id=current_user.user_id
    )
    logger.info(f"Admin {current_user.user_id} deleted user {user_id}")
    return {"message": "User deleted successfully"}


@router.get("/roles")
async def list_roles(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """The roles table, or the built-in roles when it is empty."""
    roles = db.query(Role).order_by(Role.role_id.asc()).all()
    if roles:
        return [
            {"role_id": r.role_id, "role_name": r.role_name, "description": r.description}
            for r in roles
        ]
    return [
        {"role_id": ROLE_IDS[code], "role_name": ROLE_NAMES[code], "description": ROLE_DESCRIPTIONS[code]}
        for code in RoleCode
    ]


# ============================================================================
# Submissions
# ============================================================================

@router.get("/submissions")
async def list_submissions(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    faculty: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    academic_year: Optional[str] = Query(None, alias="academicYear"),
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    query = apply_filters(
        base_query(db), faculty=faculty, status=status_filter,
        academic_year=academic_year, search=search, search_authors=True
    )
    result = paginate(db, query, page, limit, with_comment_count=True)

    ActivityService.log_from_request(
        db=db, request=request, action_type="View",
        action_details="Viewed submissions list", user_id=current_user.user_id
    )
    return result


@router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return serialize_submission(SubmissionService.get(db, submission_id))


@router.get("/submissions/{submission_id}/comments")
async def list_comments(
    submission_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    SubmissionService.get(db, submission_id)
    return SubmissionService.list_comments(db, submission_id)


@router.post("/submissions/{submission_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    submission_id: int,
    body: CommentRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    submission = SubmissionService.get(db, submission_id)
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
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    submission = SubmissionService.get(db, submission_id)
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
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage)
):
    submission = SubmissionService.get_for_user(db, current_user, submission_id)
    return send_submission_file(db, request, submission, storage, current_user.user_id, preview=preview)


# ============================================================================
# Analytics
# ============================================================================

@router.get("/analytics/page-visits")
async def page_visits(
    date_range: str = Query("all", alias="dateRange"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Top 10 most viewed pages."""
    return StatsService.page_visits(db, date_range)


@router.get("/analytics/browser-stats")
async def browser_stats(
    date_range: str = Query("all", alias="dateRange"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return StatsService.browser_stats(db, date_range)


@router.get("/analytics/user-activity")
async def user_activity(
    date_range: str = Query("all", alias="dateRange"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    """Latest 50 activity rows within the date range."""
    return ActivityService.recent(db, limit=50, since=date_range_start(date_range))


# ============================================================================
# Settings
# ============================================================================

@router.get("/settings/academic")
async def get_academic_settings(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    return serialize_academic(SettingsService.ensure_academic(db))


@router.put("/settings/academic")
async def update_academic_settings(
    body: AcademicSettingsRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db_session)
):
    row = SettingsService.upsert_academic(
        db,
        academic_year=body.academic_year,
        submission_deadline=body.submission_deadline,
        final_edit_deadline=body.final_edit_deadline,
        publication_date=body.publication_date,
    )

    ActivityService.log_from_request(
        db=db, request=request, action_type="Settings Update",
        action_details=f"Updated academic settings for {row.academic_year}", user_id=current_user.user_id
    )
    return {"message": "Academic settings updated successfully", "settings": serialize_academic(row)}
