"""
Current user endpoints: profile and account settings.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, Dict, Any

from database.models import User
from auth.dependencies import get_current_user, get_db_session
from services.auth_service import AuthService, serialize_user
from services.settings_service import SettingsService
from services.activity_service import ActivityService


router = APIRouter(prefix="/api/users", tags=["users"])


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class AccountSettingsUpdate(BaseModel):
    """Any combination of name change, password change and notification preferences."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    notifications: Optional[Dict[str, Any]] = None


def _apply_names(user: User, first_name: Optional[str], last_name: Optional[str]) -> None:
    if first_name is not None:
        if not first_name.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="First name cannot be empty")
        user.first_name = first_name.strip()
    if last_name is not None:
        if not last_name.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Last name cannot be empty")
        user.last_name = last_name.strip()


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the logged in user's profile."""
    return serialize_user(current_user)


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    """Update first and last name."""
    if body.first_name is None and body.last_name is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")

    _apply_names(current_user, body.first_name, body.last_name)
    db.commit()
    db.refresh(current_user)

    ActivityService.log_from_request(
        db=db, request=request, action_type="Profile Update",
        action_details="Updated profile", user_id=current_user.user_id
    )
    return {"message": "Profile updated successfully", "user": serialize_user(current_user)}


@router.patch("/settings")
async def update_settings(
    body: AccountSettingsUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session)
):
    """
    Update account settings.
    A password change needs both current_password and new_password.
    """
    _apply_names(current_user, body.first_name, body.last_name)

    password_changed = False
    if body.new_password is not None or body.current_password is not None:
        if not body.current_password or not body.new_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password and new password are required to change password"
            )
        AuthService.change_password(db, current_user, body.current_password, body.new_password)
        password_changed = True

    db.commit()

    notifications = None
    if body.notifications is not None:
        notifications = SettingsService.put_user_settings(
            db, current_user.user_id, "notifications", body.notifications
        )

    ActivityService.log_from_request(
        db=db, request=request, action_type="Settings Update",
        action_details="Password changed" if password_changed else "Updated account settings",
        user_id=current_user.user_id
    )

    db.refresh(current_user)
    response = {"message": "Settings updated successfully", "user": serialize_user(current_user)}
    if notifications is not None:
        response["notifications"] = notifications
    return response
