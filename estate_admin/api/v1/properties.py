# ================================
# PROPERTY API ROUTES (api/v1/properties.py)
# ================================

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from estate_admin.dependencies import get_db, get_current_active_user, get_pagination_params, require_staff
from estate_admin.models.user import User
from estate_admin.models.rbac import STAFF_ROLES
from estate_admin.models.business import PropertyStatus
from estate_admin.services.property_service import PropertyService
from estate_admin.services.rbac_service import RBACService
from estate_admin.schemas.business import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse
)

router = APIRouter()

@router.get("", response_model=PropertyListResponse)
async def list_properties(
    search: Optional[str] = Query(None, description="Title, address, city or description"),
    type: Optional[str] = Query(None, description="Property type"),
    is_active: Optional[bool] = Query(None),
    property_status: Optional[PropertyStatus] = Query(None, alias="status"),
    pagination: tuple[int, int] = Depends(get_pagination_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """List properties; visitors only see active listings"""
    if not RBACService.has_any_role(db, current_user.id, STAFF_ROLES):
        is_active = True
    
    page, page_size = pagination
    return PropertyService.list_properties(
        db=db,
        search=search,
        property_type=type,
        is_active=is_active,
        status=property_status,
        page=page,
        page_size=page_size
    )

@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Property details; counts as a view"""
    is_staff = RBACService.has_any_role(db, current_user.id, STAFF_ROLES)
    property = PropertyService.get_property(db, property_id, include_inactive=is_staff)
    return PropertyService.record_view(db, property)

@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    property_data: PropertyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Create a property (Admin/Agent)"""
    return PropertyService.create_property(db, property_data, current_user)

@router.put("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: UUID,
    property_data: PropertyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Update a property (Admin/Agent)"""
    return PropertyService.update_property(db, property_id, property_data, current_user)
