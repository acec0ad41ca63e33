"""
Domain exceptions raised by the service layer.

Routers let these propagate; app.py turns them into
{"detail": message} responses with the carried status code.
"""


class PortalError(Exception):
    """Base exception for rejected portal operations."""

    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(PortalError):
    """Malformed or incomplete input."""
    status_code = 400


class AccessDeniedError(PortalError):
    """Authenticated, but not allowed to touch the resource."""
    status_code = 403


class NotFoundError(PortalError):
    """Referenced row or file does not exist."""
    status_code = 404


class ConflictError(PortalError):
    """Uniqueness or reference conflict."""
    status_code = 409
