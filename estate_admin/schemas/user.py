# ================================
# USER SCHEMAS (schemas/user.py)
# ================================

from pydantic import Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime

from estate_admin.schemas.base import BaseSchema, BaseResponseSchema
from estate_admin.models.rbac import RoleName

class UserProfileUpdate(BaseSchema):
    """Schema für Profil-Updates durch den User selbst"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    
    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

class UserAdminUpdate(UserProfileUpdate):
    """Schema für User-Updates durch Admin"""
    role: Optional[RoleName] = None

class UserRoleUpdate(BaseSchema):
    role: RoleName

class UserResponse(BaseResponseSchema):
    """Schema für User Response"""
    email: str
    full_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    is_active: bool
    created_at: datetime
    role_names: List[str] = Field(default_factory=list)

class UserListItem(UserResponse):
    """User row in the admin list"""
    reservation_count: int = 0

class UserListResponse(BaseSchema):
    items: List[UserListItem]
    total: int
    page: int
    size: int
    pages: int
