# ================================
# USER API ROUTES (api/v1/users.py)
# ================================

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from estate_admin.dependencies import get_db, get_current_active_user, get_pagination_params, require_admin
from estate_admin.models.user import User
from estate_admin.models.rbac import RoleName
from estate_admin.services.user_service import UserService
from estate_admin.schemas.user import (
    UserProfileUpdate,
    UserAdminUpdate,
    UserRoleUpdate,
    UserResponse,
    UserListResponse
)
from estate_admin.schemas.base import SuccessResponse

router = APIRouter()

# ================================
# OWN PROFILE
# ================================

@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    current_user: User = Depends(get_current_active_user)
):
    """Profile of the current user"""
    return UserResponse.model_validate(current_user)

@router.put("/me", response_model=UserResponse)
async def update_my_profile(
    profile_data: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Update name, email and contact details of the current user"""
    user = UserService.update_profile(db, current_user, profile_data)
    return UserResponse.model_validate(user)

# ================================
# USER ADMINISTRATION (Admin)
# ================================

@router.get("", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None),
    role: Optional[RoleName] = Query(None),
    is_active: Optional[bool] = Query(None),
    pagination: tuple[int, int] = Depends(get_pagination_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """List users with role and reservation count"""
    page, page_size = pagination
    return UserService.list_users(
        db=db,
        search=search,
        role=role,
        is_active=is_active,
        page=page,
        page_size=page_size
    )

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return UserResponse.model_validate(UserService.get_user(db, user_id))

@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    update: UserAdminUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Edit profile fields and role of a user"""
    user = UserService.admin_update_user(db, user_id, update, current_user)
    return UserResponse.model_validate(user)

@router.put("/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: UUID,
    role_update: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Replace the role of a user"""
    user = UserService.change_role(db, user_id, role_update.role, current_user)
    return UserResponse.model_validate(user)

@router.post("/{user_id}/toggle-active", response_model=UserResponse)
async def toggle_user_active(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Activate or deactivate an account"""
    user = UserService.toggle_active(db, user_id, current_user)
    return UserResponse.model_validate(user)

@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete a user without reservations"""
    UserService.delete_user(db, user_id, current_user)
    return SuccessResponse(message="User deleted")
