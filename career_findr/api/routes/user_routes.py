"""
User Routes

GET /users - List users (admin, filter by role/status)
GET /users/stats - Platform counts (admin)
GET /users/{user_id} - Get a user (admin)
PUT /users/{user_id}/status - Set account status (admin)
POST /users/{user_id}/approve - Approve account (admin)
POST /users/{user_id}/reject - Reject account (admin)
DELETE /users/{user_id} - Delete account (admin)
PUT /users/me/profile - Update own profile
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List, Optional

from career_findr.core.auth import get_current_user, get_user_service, require_roles
from career_findr.core.routing import dashboard_for
from career_findr.schemas.schemas import (
    MessageResponse, PlatformStatsResponse, ProfileUpdate, UserAccount, UserResponse,
    UserRole, UserStatus, UserStatusUpdate
)
from career_findr.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

admin_only = require_roles("admin")


def to_user_response(user: UserAccount) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        phone=user.phone,
        role=user.role,
        status=UserStatus(user.status).value,
        skills=user.skills,
        experience_level=user.experience_level,
        created_at=user.created_at,
        dashboard=dashboard_for(user.role),
    )


@router.get("", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = Query(None),
    status: Optional[UserStatus] = Query(None),
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    """List accounts, newest first."""
    accounts = users.list_users(
        role=role.value if role else None,
        status=status.value if status else None,
    )
    return [to_user_response(user) for user in accounts]


@router.get("/stats", response_model=PlatformStatsResponse)
def platform_stats(
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    return users.platform_stats()


@router.put("/me/profile", response_model=UserResponse)
def update_my_profile(
    data: ProfileUpdate,
    user: UserAccount = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Update own profile. Only provided fields are updated."""
    if not data.model_dump(exclude_none=True):
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = users.update_profile(user.id, data)
    if not updated:
        raise HTTPException(status_code=404, detail="Account not found")
    return to_user_response(updated)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    user = users.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return to_user_response(user)


@router.put("/{user_id}/status", response_model=MessageResponse)
def set_user_status(
    user_id: str,
    data: UserStatusUpdate,
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    if not users.update_status(user_id, data.status):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message=f"User status set to {data.status.value}")


@router.post("/{user_id}/approve", response_model=MessageResponse)
def approve_user(
    user_id: str,
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    if not users.approve(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User approved")


@router.post("/{user_id}/reject", response_model=MessageResponse)
def reject_user(
    user_id: str,
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    if not users.reject(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User rejected")


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    admin: UserAccount = Depends(admin_only),
    users: UserService = Depends(get_user_service),
):
    if not users.delete(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User deleted")
