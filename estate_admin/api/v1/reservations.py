# ================================
# RESERVATION API ROUTES (api/v1/reservations.py)
# ================================

from typing import Optional, Callable, TypeVar
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import uuid
import logging

from estate_admin.dependencies import (
    get_db,
    get_current_active_user,
    require_role,
    require_staff
)
from estate_admin.models.user import User
from estate_admin.models.rbac import RoleName, STAFF_ROLES
from estate_admin.models.business import ReservationStatus
from estate_admin.services.reservation_service import ReservationService
from estate_admin.services.property_service import PropertyService
from estate_admin.services.rbac_service import RBACService
from estate_admin.schemas.reservation import (
    ReservationCreate,
    ReservationDecision,
    ReservationResponse,
    ReservationListResponse,
    MyReservationsResponse,
    AvailableSlotsResponse,
    AdvisoryConflictResponse
)
from estate_admin.schemas.base import SuccessResponse
from estate_admin.core.exceptions import AuthorizationError, ConcurrencyConflictError

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")

def _retry_once_on_conflict(db: Session, operation: Callable[[], T]) -> T:
    """Runs ``operation`` again once if a concurrent writer got there first"""
    try:
        return operation()
    except ConcurrencyConflictError:
        logger.info("Concurrent modification detected, retrying once")
        db.expire_all()
        return operation()

@router.get("/properties/{property_id}/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    property_id: uuid.UUID,
    date: date = Query(..., description="Day to check (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Free visit slots of a property on one day"""
    PropertyService.get_property(db, property_id)
    slots = ReservationService.compute_available_slots(db, property_id, date)
    return AvailableSlotsResponse(property_id=property_id, date=date, slots=slots)

@router.post("/reservations", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(RoleName.USER))
):
    """Request a visit"""
    reservation = ReservationService.create_reservation(
        db=db,
        property_id=reservation_data.property_id,
        user_id=current_user.id,
        reservation_date=reservation_data.reservation_date,
        time_slot=reservation_data.time_slot
    )
    return ReservationResponse.model_validate(ReservationService.get_reservation(db, reservation.id))

@router.get("/reservations", response_model=ReservationListResponse)
async def list_reservations(
    search: Optional[str] = Query(None, description="Property title, user name or email"),
    status: Optional[ReservationStatus] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    property_id: Optional[uuid.UUID] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """All reservations with filters and status counters (staff only)"""
    return ReservationService.list_reservations(
        db=db,
        search=search,
        status=status,
        date_from=date_from,
        date_to=date_to,
        property_id=property_id
    )

@router.get("/reservations/mine", response_model=MyReservationsResponse)
async def my_reservations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Reservations of the current user"""
    return ReservationService.my_reservations(db, current_user.id)

@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation details (staff or owner)"""
    reservation = ReservationService.get_reservation(db, reservation_id)
    
    if reservation.user_id != current_user.id and not RBACService.has_any_role(db, current_user.id, STAFF_ROLES):
        raise AuthorizationError("Access denied to this reservation")
    
    return ReservationResponse.model_validate(reservation)

@router.get("/reservations/{reservation_id}/advisory-conflict", response_model=AdvisoryConflictResponse)
async def check_advisory_conflict(
    reservation_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Warns about other accepted visits of the same user for the same property"""
    return ReservationService.check_advisory_conflict(db, reservation_id)

@router.post("/reservations/{reservation_id}/accept", response_model=ReservationResponse)
async def accept_reservation(
    reservation_id: uuid.UUID,
    decision: ReservationDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Accept a visit request (Admin/Agent)"""
    reservation = _retry_once_on_conflict(db, lambda: ReservationService.accept(
        db=db,
        reservation_id=reservation_id,
        admin_remark=decision.admin_remark,
        acting_user_id=current_user.id
    ))
    return ReservationResponse.model_validate(reservation)

@router.post("/reservations/{reservation_id}/refuse", response_model=ReservationResponse)
async def refuse_reservation(
    reservation_id: uuid.UUID,
    decision: ReservationDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Refuse a visit request (Admin/Agent)"""
    reservation = _retry_once_on_conflict(db, lambda: ReservationService.refuse(
        db=db,
        reservation_id=reservation_id,
        admin_remark=decision.admin_remark,
        acting_user_id=current_user.id
    ))
    return ReservationResponse.model_validate(reservation)

@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel an own reservation"""
    reservation = _retry_once_on_conflict(db, lambda: ReservationService.cancel(
        db=db,
        reservation_id=reservation_id,
        requesting_user_id=current_user.id
    ))
    return ReservationResponse.model_validate(reservation)

@router.delete("/reservations/{reservation_id}", response_model=SuccessResponse)
async def delete_reservation(
    reservation_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Delete a reservation and its notifications (Admin/Agent)"""
    ReservationService.delete_reservation(db, reservation_id, current_user.id)
    return SuccessResponse(message="Reservation deleted")
