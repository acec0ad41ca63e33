"""
Authentication endpoints: student self-registration and login.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, Union

from database.models import RoleCode
from auth.dependencies import get_db_session
from services.auth_service import AuthService
from services.activity_service import ActivityService
from core.logger import logger


router = APIRouter(prefix="/api/auth", tags=["authentication"])


# Request Models
class RegisterRequest(BaseModel):
    """Student registration. Fields are checked in the handler for a single error message."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    faculty_id: Optional[Union[int, str]] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Login with email + password."""
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    """Token plus the user block."""
    token: str
    user: dict
    expiresIn: int


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db_session)
):
    """
    Register a new student account.
    Returns a token so the user is logged in straight away.
    """
    if not all([body.first_name, body.last_name, body.email, body.faculty_id, body.password]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required"
        )

    user = AuthService.create_user(
        db=db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        role=RoleCode.STUDENT,
        faculty_id=body.faculty_id,
    )

    ActivityService.log_from_request(
        db=db,
        request=request,
        action_type="Registration",
        action_details=f"New student registered: {user.email}",
        user_id=user.user_id,
    )

    token, expires_in = AuthService.create_token(user)
    user_info = AuthService.user_payload(user)
    user_info.pop("lastLogin", None)
    return AuthResponse(token=token, user=user_info, expiresIn=expires_in)


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db_session)
):
    """
    Login with email + password.
    Returns a JWT and user info.
    """
    if not credentials.email or not credentials.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required"
        )

    user = AuthService.authenticate_user(db, credentials.email.strip().lower(), credentials.password)
    if not user:
        logger.warning(f"Failed login for {credentials.email.strip().lower()}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    ActivityService.log_from_request(
        db=db,
        request=request,
        action_type="Login",
        action_details="User logged in",
        user_id=user.user_id,
    )

    token, expires_in = AuthService.create_token(user)
    return AuthResponse(token=token, user=AuthService.user_payload(user), expiresIn=expires_in)
