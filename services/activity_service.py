"""
Activity logging service backing the dashboards' "recent activity" feeds.
"""
from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import Request

from database.models import ActivityLog, User
from core.logger import logger

DATE_RANGE_DAYS = {
    "week": 7,
    "month": 30,
    "year": 365,
}


def date_range_start(date_range: Optional[str]) -> Optional[datetime]:
    """Start of a week/month/year window; None for "all" or unknown values."""
    days = DATE_RANGE_DAYS.get((date_range or "").lower())
    if days is None:
        return None
    return datetime.utcnow() - timedelta(days=days)


class ActivityService:
    """Service for activity logging."""

    @staticmethod
    def log_action(
        db: Session,
        action_type: str,
        action_details: Optional[str] = None,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """
        Record an activity row.

        Logging must never break the operation being logged: database errors
        are reported and swallowed. Callers commit their own changes first.

        Args:
            db: Database session
            action_type: Action name (e.g. "Login", "Download")
            action_details: Human readable description
            user_id: Acting user, None for anonymous actions
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            Created ActivityLog, or None when it could not be stored
        """
        activity = ActivityLog(
            user_id=user_id,
            action_type=action_type,
            action_details=action_details,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        try:
            db.add(activity)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error logging activity '{action_type}' for user {user_id}: {e}", exc_info=True)
            return None
        return activity

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        action_type: str,
        action_details: Optional[str] = None,
        user_id: Optional[int] = None
    ) -> Optional[ActivityLog]:
        """Record an activity row, taking IP and user agent from the request."""
        return ActivityService.log_action(
            db=db,
            action_type=action_type,
            action_details=action_details,
            user_id=user_id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

    @staticmethod
    def recent(
        db: Session,
        limit: int = 10,
        since: Optional[datetime] = None,
        faculty_id: Optional[int] = None,
        require_user: bool = False
    ) -> List[dict]:
        """
        Latest activity rows joined with the acting user's name.

        Args:
            limit: Maximum rows
            since: Only rows at or after this time
            faculty_id: Only activity by members of this faculty
            require_user: Drop anonymous rows
        """
        query = db.query(ActivityLog, User).outerjoin(User, ActivityLog.user_id == User.user_id)
        if require_user or faculty_id is not None:
            query = query.filter(User.user_id.isnot(None))
        if faculty_id is not None:
            query = query.filter(User.faculty_id == faculty_id)
        if since is not None:
            query = query.filter(ActivityLog.log_timestamp >= since)

        rows = query.order_by(ActivityLog.log_timestamp.desc(), ActivityLog.log_id.desc()).limit(limit).all()
        return [
            {
                "log_id": log.log_id,
                "user_id": log.user_id,
                "action_type": log.action_type,
                "action_details": log.action_details,
                "log_timestamp": log.log_timestamp.isoformat() if log.log_timestamp else None,
                "first_name": user.first_name if user else None,
                "last_name": user.last_name if user else None,
            }
            for log, user in rows
        ]
