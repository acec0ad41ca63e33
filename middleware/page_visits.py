"""
Page visit tracking for frontend routes served through the API host.
"""
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from auth.security import extract_bearer_token, decode_access_token
from database.models import PageVisit
from core.logger import logger
import config


def is_tracked_page(method: str, path: str) -> bool:
    """GET requests for pages: not API calls and not static assets."""
    return method == "GET" and not path.startswith("/api/") and "." not in path


class PageVisitMiddleware(BaseHTTPMiddleware):
    """Record a page_visits row for every tracked page request."""

    async def dispatch(self, request: Request, call_next):
        if is_tracked_page(request.method, request.url.path):
            self._record(request)
        return await call_next(request)

    def _record(self, request: Request) -> None:
        if not config.db:
            return

        user_id = None
        token = extract_bearer_token(request.headers.get("authorization"))
        if token:
            payload = decode_access_token(token, config.SECRET_KEY)
            if payload:
                user_id = payload.get("userId")

        user_agent = request.headers.get("user-agent")
        try:
            with config.db.get_session() as session:
                session.add(PageVisit(
                    user_id=user_id,
                    page_url=request.url.path[:500],
                    browser_info=user_agent[:500] if user_agent else None,
                    ip_address=request.client.host if request.client else None,
                ))
        except SQLAlchemyError as e:
            logger.error(f"Error recording page visit for {request.url.path}: {e}")
