"""
Dashboard and analytics aggregates for the admin, manager and coordinator views.
"""
import re
from collections import defaultdict
from datetime import datetime
from typing import Optional, List, Dict

from sqlalchemy import func, case, distinct
from sqlalchemy.orm import Session

from database.models import (
    User, Faculty, Submission, SubmissionStatus, PageVisit, RoleCode, ROLE_IDS
)
from services.activity_service import date_range_start

TRENDS_MONTHS = 12
TRENDS_YEARS = 5

_BROWSER_PATTERNS = [
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/(\d+)")),
    ("Chrome", re.compile(r"(?:Chrome|CriOS)/(\d+)")),
    ("Firefox", re.compile(r"(?:Firefox|FxiOS)/(\d+)")),
    ("Safari", re.compile(r"Version/(\d+).*Safari/")),
]


def parse_browser(user_agent: Optional[str]) -> tuple:
    """
    (browser name, major version) from a user agent string.

    Edge is checked first because its UA also claims Chrome and Safari,
    and Chrome before Safari for the same reason.
    """
    if user_agent:
        for name, pattern in _BROWSER_PATTERNS:
            match = pattern.search(user_agent)
            if match:
                return name, match.group(1)
        if "Safari/" in user_agent:
            return "Safari", "Unknown"
    return "Other", "Unknown"


def _selected_sum():
    return func.sum(case((Submission.selected.is_(True), 1), else_=0))


def _month_keys(now: datetime, count: int) -> List[tuple]:
    """(year, month) pairs for the last `count` months, oldest first."""
    keys = []
    year, month = now.year, now.month
    for _ in range(count):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


class StatsService:
    """Read-only aggregate queries."""

    @staticmethod
    def admin_dashboard(db: Session) -> dict:
        total_users = db.query(func.count(User.user_id)).scalar() or 0
        total_submissions = db.query(func.count(Submission.submission_id)).scalar() or 0
        pending = db.query(func.count(Submission.submission_id)).filter(
            Submission.status == SubmissionStatus.SUBMITTED
        ).scalar() or 0
        selected = db.query(func.count(Submission.submission_id)).filter(
            Submission.selected.is_(True)
        ).scalar() or 0
        return {
            "totalUsers": total_users,
            "totalSubmissions": total_submissions,
            "pendingSubmissions": pending,
            "selectedSubmissions": selected,
        }

    @staticmethod
    def faculty_stats(db: Session) -> List[dict]:
        """Per-faculty submission, selection and contributor counts, including empty faculties."""
        rows = (
            db.query(
                Faculty.faculty_id,
                Faculty.faculty_name,
                func.count(Submission.submission_id),
                _selected_sum(),
                func.count(distinct(Submission.user_id)),
            )
            .outerjoin(Submission, Submission.faculty_id == Faculty.faculty_id)
            .group_by(Faculty.faculty_id, Faculty.faculty_name)
            .order_by(Faculty.faculty_name.asc())
            .all()
        )
        return [
            {
                "faculty_id": faculty_id,
                "faculty_name": faculty_name,
                "submission_count": submission_count or 0,
                "selected_count": int(selected_count or 0),
                "contributor_count": contributor_count or 0,
            }
            for faculty_id, faculty_name, submission_count, selected_count, contributor_count in rows
        ]

    @staticmethod
    def manager_overview(db: Session) -> dict:
        total = db.query(func.count(Submission.submission_id)).scalar() or 0
        selected = db.query(func.count(Submission.submission_id)).filter(
            Submission.selected.is_(True)
        ).scalar() or 0
        pending = db.query(func.count(Submission.submission_id)).filter(
            Submission.status == SubmissionStatus.SUBMITTED
        ).scalar() or 0
        contributors = db.query(func.count(distinct(Submission.user_id))).scalar() or 0
        return {
            "totalSubmissions": total,
            "selectedSubmissions": selected,
            "pendingSelections": pending,
            "totalContributors": contributors,
        }

    @staticmethod
    def contributors(db: Session, limit: int = 20) -> List[dict]:
        """Top contributors by submission count."""
        submission_count = func.count(Submission.submission_id)
        rows = (
            db.query(
                User.user_id,
                User.first_name,
                User.last_name,
                User.email,
                Faculty.faculty_name,
                submission_count,
                _selected_sum(),
            )
            .join(Submission, Submission.user_id == User.user_id)
            .outerjoin(Faculty, Faculty.faculty_id == User.faculty_id)
            .group_by(User.user_id, User.first_name, User.last_name, User.email, Faculty.faculty_name)
            .order_by(submission_count.desc(), User.last_name.asc())
            .limit(limit)
            .all()
        )
        return [
            {
                "user_id": user_id,
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "faculty_name": faculty_name,
                "submission_count": count or 0,
                "selected_count": int(selected or 0),
            }
            for user_id, first_name, last_name, email, faculty_name, count, selected in rows
        ]

    @staticmethod
    def trends(db: Session, timespan: str = "month", now: Optional[datetime] = None) -> List[dict]:
        """
        Submission and selection counts per period, empty periods included.

        Args:
            timespan: "month" (last 12 months, "Mon YYYY") or "year" (last 5 years, "YYYY")
            now: Reference time, defaults to the current UTC time
        """
        now = now or datetime.utcnow()
        by_year = timespan == "year"
        if by_year:
            keys = [(year,) for year in range(now.year - TRENDS_YEARS + 1, now.year + 1)]
            start = datetime(keys[0][0], 1, 1)
        else:
            keys = _month_keys(now, TRENDS_MONTHS)
            start = datetime(keys[0][0], keys[0][1], 1)

        buckets = {key: [0, 0] for key in keys}
        rows = (
            db.query(Submission.submitted_at, Submission.selected)
            .filter(Submission.submitted_at >= start)
            .all()
        )
        for submitted_at, selected in rows:
            key = (submitted_at.year,) if by_year else (submitted_at.year, submitted_at.month)
            if key in buckets:
                buckets[key][0] += 1
                if selected:
                    buckets[key][1] += 1

        result = []
        for key in keys:
            if by_year:
                label = str(key[0])
            else:
                label = datetime(key[0], key[1], 1).strftime("%b %Y")
            result.append({
                "period": label,
                "submission_count": buckets[key][0],
                "selected_count": buckets[key][1],
            })
        return result

    @staticmethod
    def document_types(db: Session) -> List[dict]:
        """File type breakdown of the selected submissions."""
        count = func.count(Submission.submission_id)
        rows = (
            db.query(Submission.file_type, count)
            .filter(Submission.selected.is_(True))
            .group_by(Submission.file_type)
            .order_by(count.desc())
            .all()
        )
        total = sum(c for _, c in rows)
        return [
            {
                "type": file_type,
                "count": c,
                "percentage": round(c * 100.0 / total, 1) if total else 0.0,
            }
            for file_type, c in rows
        ]

    @staticmethod
    def students_by_faculty(db: Session) -> List[dict]:
        rows = (
            db.query(Faculty.faculty_id, Faculty.faculty_name, func.count(User.user_id))
            .outerjoin(
                User,
                (User.faculty_id == Faculty.faculty_id) & (User.role_id == ROLE_IDS[RoleCode.STUDENT])
            )
            .group_by(Faculty.faculty_id, Faculty.faculty_name)
            .order_by(Faculty.faculty_name.asc())
            .all()
        )
        return [
            {"faculty_id": faculty_id, "faculty_name": name, "student_count": c or 0}
            for faculty_id, name, c in rows
        ]

    @staticmethod
    def page_visits(db: Session, date_range: Optional[str] = None, limit: int = 10) -> List[dict]:
        """Most viewed frontend pages within the date range."""
        view_count = func.count(PageVisit.visit_id)
        query = db.query(PageVisit.page_url, view_count)
        since = date_range_start(date_range)
        if since is not None:
            query = query.filter(PageVisit.visit_timestamp >= since)
        rows = query.group_by(PageVisit.page_url).order_by(view_count.desc()).limit(limit).all()
        return [{"page_url": url, "view_count": c} for url, c in rows]

    @staticmethod
    def browser_stats(db: Session, date_range: Optional[str] = None) -> List[dict]:
        """
        Distinct signed-in users per browser name and major version.

        Visits without a user agent are ignored. Anonymous visits keep their
        browser row but add no users.
        """
        query = db.query(PageVisit.browser_info, PageVisit.user_id).filter(PageVisit.browser_info.isnot(None))
        since = date_range_start(date_range)
        if since is not None:
            query = query.filter(PageVisit.visit_timestamp >= since)

        users = defaultdict(set)
        for browser_info, user_id in query.all():
            user_ids = users[parse_browser(browser_info)]
            if user_id is not None:
                user_ids.add(user_id)

        stats = [
            {
                "browser_name": browser,
                "browser_version": None if version == "Unknown" else version,
                "user_count": len(user_ids),
            }
            for (browser, version), user_ids in users.items()
        ]
        stats.sort(key=lambda s: (-s["user_count"], s["browser_name"], s["browser_version"] or ""))
        return stats

    @staticmethod
    def coordinator_dashboard(db: Session, faculty: Faculty) -> dict:
        counts = dict(
            db.query(Submission.status, func.count(Submission.submission_id))
            .filter(Submission.faculty_id == faculty.faculty_id)
            .group_by(Submission.status)
            .all()
        )
        contributors = db.query(func.count(distinct(Submission.user_id))).filter(
            Submission.faculty_id == faculty.faculty_id
        ).scalar() or 0
        return {
            "facultyName": faculty.faculty_name,
            "totalSubmissions": sum(counts.values()),
            "pendingSubmissions": counts.get(SubmissionStatus.SUBMITTED, 0),
            "selectedSubmissions": counts.get(SubmissionStatus.SELECTED, 0),
            "rejectedSubmissions": counts.get(SubmissionStatus.REJECTED, 0),
            "totalContributors": contributors,
        }

    @staticmethod
    def faculty_students(db: Session, faculty_id: int) -> List[dict]:
        """Students of a faculty with their submission counts."""
        submission_count = func.count(Submission.submission_id)
        rows = (
            db.query(User, submission_count, _selected_sum())
            .outerjoin(Submission, Submission.user_id == User.user_id)
            .filter(User.faculty_id == faculty_id, User.role_id == ROLE_IDS[RoleCode.STUDENT])
            .group_by(User.user_id)
            .order_by(User.last_name.asc(), User.first_name.asc())
            .all()
        )
        return [
            {
                "user_id": user.user_id,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "email": user.email,
                "is_active": user.is_active,
                "last_login": user.last_login.isoformat() if user.last_login else None,
                "submission_count": count or 0,
                "selected_count": int(selected or 0),
            }
            for user, count, selected in rows
        ]
