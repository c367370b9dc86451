# ================================
# RESERVATION SCHEMAS (schemas/reservation.py)
# ================================

from typing import Optional, List
from datetime import date, datetime
from pydantic import Field, field_validator
import uuid

from estate_admin.schemas.base import BaseSchema, BaseResponseSchema
from estate_admin.models.business import ReservationStatus

class ReservationCreate(BaseSchema):
    """Schema for requesting a visit"""
    property_id: uuid.UUID
    reservation_date: date
    time_slot: str = Field(..., max_length=8, description="One of the bookable slots, e.g. '14:00'")
    
    @field_validator('reservation_date', mode='before')
    @classmethod
    def drop_time_of_day(cls, v):
        """Datetimes are accepted; only their calendar date counts"""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v.strip()) > 10:
            return datetime.fromisoformat(v.strip().replace("Z", "+00:00")).date()
        return v

class ReservationDecision(BaseSchema):
    """Schema for accepting or refusing a reservation"""
    admin_remark: Optional[str] = Field(None, max_length=2000)

class ReservationPropertyInfo(BaseResponseSchema):
    """Property summary embedded in reservation responses"""
    title: str
    city: str
    address: str

class ReservationUserInfo(BaseResponseSchema):
    """Requester summary embedded in reservation responses"""
    full_name: str
    email: str
    phone: Optional[str] = None

class ReservationResponse(BaseResponseSchema):
    """Schema for reservation response"""
    property_id: uuid.UUID
    user_id: uuid.UUID
    reservation_date: date
    time_slot: str
    status: ReservationStatus
    admin_remark: Optional[str] = None
    created_at: datetime
    modified_at: Optional[datetime] = None
    
    property: Optional[ReservationPropertyInfo] = None
    user: Optional[ReservationUserInfo] = None

class ReservationCounts(BaseSchema):
    """Status counters shown above the staff reservation list"""
    pending: int = 0
    accepted: int = 0
    refused: int = 0
    cancelled: int = 0
    today: int = 0

class ReservationListResponse(BaseSchema):
    """Staff reservation list with counters"""
    items: List[ReservationResponse]
    total: int
    counts: ReservationCounts

class MyReservationCounts(BaseSchema):
    pending: int = 0
    accepted: int = 0
    upcoming: int = 0

class MyReservationsResponse(BaseSchema):
    """Reservations of the current user"""
    items: List[ReservationResponse]
    total: int
    counts: MyReservationCounts

class AvailableSlotsResponse(BaseSchema):
    """Free slots of a property on one day"""
    property_id: uuid.UUID
    date: date
    slots: List[str]

class AdvisoryConflictResponse(BaseSchema):
    """Informational check run before accepting a reservation"""
    has_conflict: bool
    message: Optional[str] = None
    conflicting_reservation_id: Optional[uuid.UUID] = None
    conflicting_date: Optional[date] = None
    conflicting_time_slot: Optional[str] = None
