# ================================
# PROPERTY SCHEMAS (schemas/business.py)
# ================================

from pydantic import Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from estate_admin.schemas.base import BaseSchema, BaseResponseSchema
from estate_admin.models.business import PropertyStatus

class PropertyBase(BaseSchema):
    """Base property schema"""
    title: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=50, description="apartment, house, villa, land, commercial, ...")
    price: Decimal = Field(..., ge=0, decimal_places=2)
    description: Optional[str] = None
    
    # Location
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    
    # Characteristics
    area: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    floor: Optional[int] = None
    has_parking: bool = False
    has_garden: bool = False
    has_balcony: bool = False
    has_elevator: bool = False
    image_url: Optional[str] = Field(None, max_length=500)
    
    status: PropertyStatus = PropertyStatus.FOR_SALE
    is_active: bool = True
    is_featured: bool = False

class PropertyCreate(PropertyBase):
    """Schema for creating a property"""
    pass

class PropertyUpdate(BaseSchema):
    """Schema for updating a property (partial)"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    description: Optional[str] = None
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    area: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    floor: Optional[int] = None
    has_parking: Optional[bool] = None
    has_garden: Optional[bool] = None
    has_balcony: Optional[bool] = None
    has_elevator: Optional[bool] = None
    image_url: Optional[str] = Field(None, max_length=500)
    status: Optional[PropertyStatus] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None

class PropertyResponse(PropertyBase, BaseResponseSchema):
    """Schema for property response"""
    view_count: int
    created_at: datetime
    modified_at: Optional[datetime] = None

class PropertyOverview(BaseResponseSchema):
    """Lightweight property row for lists"""
    title: str
    type: str
    price: Decimal
    city: str
    status: PropertyStatus
    is_active: bool
    is_featured: bool
    image_url: Optional[str] = None
    created_at: datetime

class PropertyListResponse(BaseSchema):
    """Schema for paginated property list"""
    items: List[PropertyOverview]
    total: int
    page: int
    size: int
    pages: int
    
    model_config = ConfigDict(from_attributes=True)
