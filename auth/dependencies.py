"""
Authentication dependencies for FastAPI.
"""
from typing import Optional, List

from fastapi import Depends, HTTPException, status, Security
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database.models import User, RoleCode, normalize_role
from auth.security import security, decode_access_token
import config


def get_db_session():
    """Get database session."""
    if not config.db:
        raise HTTPException(status_code=503, detail="Database not initialized")
    with config.db.get_session() as session:
        yield session


def get_user_from_token(token: str, db: Session) -> User:
    """
    Resolve the user named by a bearer token.

    Raises:
        HTTPException: 403 for an invalid or expired token, 401 when the
        account no longer exists or is inactive
    """
    payload = decode_access_token(token, config.SECRET_KEY)
    if payload is None or payload.get("userId") is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token",
        )

    user = db.query(User).filter(User.user_id == payload["userId"]).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db_session)
) -> User:
    """
    Get current authenticated user from the bearer JWT.

    The role is read from the database so that role changes apply
    to tokens issued before them.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return get_user_from_token(credentials.credentials, db)


def require_role(allowed_roles: List[RoleCode], detail: str):
    """
    Dependency factory for role-based access control.

    Args:
        allowed_roles: Roles permitted to call the route
        detail: Message returned with the 403

    Returns:
        Dependency function
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if normalize_role(current_user.role_id) not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=detail
            )
        return current_user

    return role_checker


require_admin = require_role([RoleCode.ADMIN], "Administrator access required")
require_manager = require_role([RoleCode.MANAGER], "Marketing Manager access required")
require_coordinator = require_role([RoleCode.COORDINATOR], "Faculty Coordinator access required")
