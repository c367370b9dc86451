# ================================
# RESERVATION SERVICE (services/reservation_service.py)
# ================================

from typing import Optional, List, Dict, Any, Iterable, Callable
from datetime import date, datetime, timedelta
from sqlalchemy import or_, case
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import uuid
import logging

from estate_admin.config import settings
from estate_admin.models.business import Reservation, ReservationStatus, Property, ACCEPTED_SLOT_INDEX
from estate_admin.models.base import utcnow
from estate_admin.models.user import User
from estate_admin.core.time_slots import TIME_SLOTS, parse_time_slot
from estate_admin.core.exceptions import (
    NotFoundError,
    AuthorizationError,
    InvalidDateError,
    SlotUnavailableError,
    SlotConflictError,
    InvalidTransitionError,
    ConcurrencyConflictError
)
from estate_admin.services.property_service import PropertyService
from estate_admin.services.rbac_service import RBACService
from estate_admin.services.notification_service import NotificationService
from estate_admin.utils.audit import audit_logger

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"

class ReservationService:
    """Visit scheduling: slot availability, booking and the review workflow"""

    # Valid status transitions
    VALID_TRANSITIONS = {
        ReservationStatus.PENDING: {
            ReservationStatus.ACCEPTED,
            ReservationStatus.REFUSED,
            ReservationStatus.CANCELLED
        },
        ReservationStatus.ACCEPTED: {ReservationStatus.CANCELLED},
        ReservationStatus.REFUSED: {ReservationStatus.REFUSED},  # re-refusal re-notifies the owner
        ReservationStatus.CANCELLED: set()
    }

    @staticmethod
    def today() -> date:
        return date.today()

    # ================================
    # AVAILABILITY
    # ================================

    @staticmethod
    def compute_available_slots(db: Session, property_id: uuid.UUID, reservation_date: date) -> List[str]:
        """Slots of ``reservation_date`` not taken by any reservation, whatever its status"""
        taken = {
            slot for (slot,) in db.query(Reservation.time_slot).filter(
                Reservation.property_id == property_id,
                Reservation.reservation_date == reservation_date
            ).all()
        }
        return [slot for slot in TIME_SLOTS if slot not in taken]

    # ================================
    # BOOKING
    # ================================

    @staticmethod
    def create_reservation(
        db: Session,
        property_id: uuid.UUID,
        user_id: uuid.UUID,
        reservation_date: date,
        time_slot: str
    ) -> Reservation:
        """Create a pending visit request and notify staff"""

        # Row lock serializes concurrent bookings of the same property
        property = PropertyService.find_by_id(db, property_id, for_update=True)
        if not property:
            raise NotFoundError("Property not found")

        if reservation_date <= ReservationService.today():
            raise InvalidDateError("Reservation date must be after today")

        slot = parse_time_slot(time_slot)

        existing = db.query(Reservation.id).filter(
            Reservation.property_id == property_id,
            Reservation.reservation_date == reservation_date,
            Reservation.time_slot == slot
        ).first()

        if existing:
            raise SlotUnavailableError(
                f"The {slot} slot on {reservation_date.strftime(DATE_FORMAT)} is already booked"
            )

        reservation = Reservation(
            property_id=property_id,
            user_id=user_id,
            reservation_date=reservation_date,
            time_slot=slot,
            status=ReservationStatus.PENDING,
            created_at=utcnow()
        )
        db.add(reservation)
        db.flush()

        audit_logger.log_business_event(
            db=db,
            action="RESERVATION_CREATED",
            user_id=user_id,
            resource_type="reservation",
            resource_id=reservation.id,
            new_values={
                "property_id": property_id,
                "reservation_date": reservation_date,
                "time_slot": slot
            }
        )

        ReservationService._commit(db)
        db.refresh(reservation)

        logger.info(f"Reservation {reservation.id} created for property {property_id} on {reservation_date} {slot}")

        ReservationService._notify(
            db,
            audience=lambda: RBACService.get_staff_user_ids(db),
            title="New reservation",
            build_message=lambda: (
                f"New visit request for '{property.title}' on "
                f"{reservation_date.strftime(DATE_FORMAT)} at {slot}."
            ),
            reservation_id=reservation.id
        )
        return reservation

    # ================================
    # REVIEW WORKFLOW
    # ================================

    @staticmethod
    def accept(
        db: Session,
        reservation_id: uuid.UUID,
        admin_remark: Optional[str] = None,
        acting_user_id: Optional[uuid.UUID] = None
    ) -> Reservation:
        """Accept a reservation unless another one already holds its slot"""
        reservation = ReservationService._load_for_update(db, reservation_id)
        old_status = reservation.status
        ReservationService._ensure_transition(reservation, ReservationStatus.ACCEPTED)

        conflict = db.query(Reservation.id).filter(
            Reservation.id != reservation.id,
            Reservation.property_id == reservation.property_id,
            Reservation.reservation_date == reservation.reservation_date,
            Reservation.time_slot == reservation.time_slot,
            Reservation.status == ReservationStatus.ACCEPTED
        ).first()

        if conflict:
            raise SlotConflictError()

        reservation.status = ReservationStatus.ACCEPTED
        reservation.admin_remark = admin_remark
        reservation.modified_at = utcnow()

        audit_logger.log_business_event(
            db=db,
            action="RESERVATION_ACCEPTED",
            user_id=acting_user_id,
            resource_type="reservation",
            resource_id=reservation.id,
            old_values={"status": old_status},
            new_values={"status": reservation.status, "admin_remark": admin_remark}
        )

        ReservationService._commit(db)
        db.refresh(reservation)

        def build_message() -> str:
            message = f"Your visit request {ReservationService._describe(reservation)} has been accepted."
            if admin_remark:
                message += f" Remark: {admin_remark}"
            return message

        ReservationService._notify(
            db,
            audience=lambda: [reservation.user_id],
            title="Reservation accepted",
            build_message=build_message,
            reservation_id=reservation.id
        )
        return reservation

    @staticmethod
    def refuse(
        db: Session,
        reservation_id: uuid.UUID,
        admin_remark: Optional[str] = None,
        acting_user_id: Optional[uuid.UUID] = None
    ) -> Reservation:
        """Refuse a reservation; refusing it again re-stamps and re-notifies"""
        reservation = ReservationService._load_for_update(db, reservation_id)
        old_status = reservation.status
        ReservationService._ensure_transition(reservation, ReservationStatus.REFUSED)

        reservation.status = ReservationStatus.REFUSED
        reservation.admin_remark = admin_remark
        reservation.modified_at = utcnow()

        audit_logger.log_business_event(
            db=db,
            action="RESERVATION_REFUSED",
            user_id=acting_user_id,
            resource_type="reservation",
            resource_id=reservation.id,
            old_values={"status": old_status},
            new_values={"status": reservation.status, "admin_remark": admin_remark}
        )

        ReservationService._commit(db)
        db.refresh(reservation)

        def build_message() -> str:
            message = f"Your visit request {ReservationService._describe(reservation)} has been refused."
            if admin_remark:
                message += f" Reason: {admin_remark}"
            return message

        ReservationService._notify(
            db,
            audience=lambda: [reservation.user_id],
            title="Reservation refused",
            build_message=build_message,
            reservation_id=reservation.id
        )
        return reservation

    @staticmethod
    def cancel(db: Session, reservation_id: uuid.UUID, requesting_user_id: uuid.UUID) -> Reservation:
        """Cancel an own pending or accepted reservation"""
        reservation = ReservationService._load_for_update(db, reservation_id)

        if reservation.user_id != requesting_user_id:
            raise AuthorizationError("You can only cancel your own reservations")

        old_status = reservation.status
        if reservation.status in (ReservationStatus.CANCELLED, ReservationStatus.REFUSED):
            raise InvalidTransitionError(f"A {reservation.status.value} reservation cannot be cancelled")

        reservation.status = ReservationStatus.CANCELLED
        reservation.modified_at = utcnow()

        audit_logger.log_business_event(
            db=db,
            action="RESERVATION_CANCELLED",
            user_id=requesting_user_id,
            resource_type="reservation",
            resource_id=reservation.id,
            old_values={"status": old_status},
            new_values={"status": reservation.status}
        )

        ReservationService._commit(db)
        db.refresh(reservation)

        if old_status == ReservationStatus.ACCEPTED:
            ReservationService._notify(
                db,
                audience=lambda: RBACService.get_staff_user_ids(db),
                title="Reservation cancelled by user",
                build_message=lambda: (
                    f"An accepted visit {ReservationService._describe(reservation)} "
                    f"was cancelled by the user."
                ),
                reservation_id=reservation.id
            )
        return reservation

    @staticmethod
    def delete_reservation(db: Session, reservation_id: uuid.UUID, acting_user_id: uuid.UUID) -> None:
        """Hard delete by staff; the reservation's notifications go with it"""
        reservation = ReservationService._load_for_update(db, reservation_id)

        audit_logger.log_business_event(
            db=db,
            action="RESERVATION_DELETED",
            user_id=acting_user_id,
            resource_type="reservation",
            resource_id=reservation.id,
            old_values={
                "property_id": reservation.property_id,
                "user_id": reservation.user_id,
                "reservation_date": reservation.reservation_date,
                "time_slot": reservation.time_slot,
                "status": reservation.status
            }
        )

        db.delete(reservation)
        ReservationService._commit(db)

    # ================================
    # QUERIES
    # ================================

    @staticmethod
    def get_reservation(db: Session, reservation_id: uuid.UUID) -> Reservation:
        reservation = db.query(Reservation).options(
            selectinload(Reservation.property),
            selectinload(Reservation.user)
        ).filter(Reservation.id == reservation_id).first()

        if not reservation:
            raise NotFoundError("Reservation not found")
        return reservation

    @staticmethod
    def list_reservations(
        db: Session,
        search: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        property_id: Optional[uuid.UUID] = None
    ) -> Dict[str, Any]:
        """Staff overview: today first, then upcoming, then past"""
        query = db.query(Reservation).join(
            Property, Reservation.property_id == Property.id
        ).join(
            User, Reservation.user_id == User.id
        ).options(
            selectinload(Reservation.property),
            selectinload(Reservation.user)
        )

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Property.title.ilike(term),
                    User.full_name.ilike(term),
                    User.email.ilike(term)
                )
            )

        if status:
            query = query.filter(Reservation.status == status)
        if date_from:
            query = query.filter(Reservation.reservation_date >= date_from)
        if date_to:
            query = query.filter(Reservation.reservation_date <= date_to)
        if property_id:
            query = query.filter(Reservation.property_id == property_id)

        reservations = ReservationService._ordered(query).all()
        today = ReservationService.today()

        counts = ReservationService._count_by_status(reservations)
        counts["today"] = sum(1 for r in reservations if r.reservation_date == today)

        return {"items": reservations, "total": len(reservations), "counts": counts}

    @staticmethod
    def my_reservations(db: Session, user_id: uuid.UUID) -> Dict[str, Any]:
        """Reservations of one user with pending/accepted/upcoming counters"""
        query = db.query(Reservation).options(
            selectinload(Reservation.property),
            selectinload(Reservation.user)
        ).filter(Reservation.user_id == user_id)

        reservations = ReservationService._ordered(query).all()
        today = ReservationService.today()

        by_status = ReservationService._count_by_status(reservations)
        counts = {
            "pending": by_status["pending"],
            "accepted": by_status["accepted"],
            "upcoming": sum(
                1 for r in reservations
                if r.status == ReservationStatus.ACCEPTED and r.reservation_date >= today
            )
        }
        return {"items": reservations, "total": len(reservations), "counts": counts}

    @staticmethod
    def check_advisory_conflict(
        db: Session,
        reservation_id: uuid.UUID,
        window_hours: Optional[int] = None
    ) -> Dict[str, Any]:
        """Closest other accepted visit of the same user on the same property.

        Informational only; ``accept`` never consults it.
        """
        reservation = ReservationService.get_reservation(db, reservation_id)
        window = timedelta(hours=window_hours if window_hours is not None else settings.ADVISORY_CONFLICT_WINDOW_HOURS)

        others = db.query(Reservation).filter(
            Reservation.id != reservation.id,
            Reservation.property_id == reservation.property_id,
            Reservation.user_id == reservation.user_id,
            Reservation.status == ReservationStatus.ACCEPTED
        ).all()

        current = ReservationService._starts_at(reservation)
        candidates = [
            (ReservationService._starts_at(other) - current, other)
            for other in others
            if abs(ReservationService._starts_at(other) - current) <= window
        ]

        if not candidates:
            return {"has_conflict": False}

        delta, closest = min(candidates, key=lambda item: abs(item[0]))
        if not delta:
            when = "at the same time"
        else:
            direction = "after" if delta > timedelta(0) else "before"
            when = f"{ReservationService._humanize(delta)} {direction}"

        return {
            "has_conflict": True,
            "message": (
                f"The user has another accepted reservation for this property {when} "
                f"({closest.reservation_date.strftime(DATE_FORMAT)} at {closest.time_slot})."
            ),
            "conflicting_reservation_id": closest.id,
            "conflicting_date": closest.reservation_date,
            "conflicting_time_slot": closest.time_slot
        }

    # ================================
    # HELPERS
    # ================================

    @staticmethod
    def _load_for_update(db: Session, reservation_id: uuid.UUID) -> Reservation:
        reservation = db.query(Reservation).filter(
            Reservation.id == reservation_id
        ).with_for_update().populate_existing().first()

        if not reservation:
            raise NotFoundError("Reservation not found")
        return reservation

    @staticmethod
    def _ensure_transition(reservation: Reservation, target: ReservationStatus) -> None:
        if target not in ReservationService.VALID_TRANSITIONS[reservation.status]:
            raise InvalidTransitionError(
                f"Cannot change reservation from {reservation.status.value} to {target.value}"
            )

    @staticmethod
    def _commit(db: Session) -> None:
        """Commits, translating storage-level conflicts into domain errors"""
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if not ReservationService._violates_accepted_slot(e):
                raise
            logger.warning(f"Accepted-slot uniqueness violated at commit: {e.orig}")
            raise SlotConflictError()
        except StaleDataError:
            db.rollback()
            logger.warning("Reservation changed by a concurrent request")
            raise ConcurrencyConflictError()

    @staticmethod
    def _violates_accepted_slot(error: IntegrityError) -> bool:
        """True when ``error`` comes from the accepted-slot unique index.

        PostgreSQL names the constraint; SQLite only lists the columns of the
        violated unique index, and it is the only unique index on reservations.
        """
        constraint = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
        if constraint:
            return constraint == ACCEPTED_SLOT_INDEX

        text = str(error.orig)
        return ACCEPTED_SLOT_INDEX in text or (
            "UNIQUE constraint failed" in text and "reservations.time_slot" in text
        )

    @staticmethod
    def _notify(
        db: Session,
        audience: Callable[[], Iterable[uuid.UUID]],
        title: str,
        build_message: Callable[[], str],
        reservation_id: uuid.UUID
    ) -> list:
        """Post-commit fan-out. Resolving recipients or the text may hit the
        database; a failure there is logged like a failed delivery and never
        reaches the caller, whose change is already committed.
        """
        try:
            recipients = list(audience())
            message = build_message()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Could not prepare notification '{title}' for reservation {reservation_id}")
            return []

        return NotificationService.distribute(
            db,
            recipients,
            title=title,
            message=message,
            reservation_id=reservation_id
        )

    @staticmethod
    def _ordered(query):
        today = ReservationService.today()
        bucket = case(
            (Reservation.reservation_date == today, 0),
            (Reservation.reservation_date > today, 1),
            else_=2
        )
        return query.order_by(bucket, Reservation.reservation_date, Reservation.time_slot)

    @staticmethod
    def _count_by_status(reservations: Iterable[Reservation]) -> Dict[str, int]:
        counts = {status.value: 0 for status in ReservationStatus}
        for reservation in reservations:
            counts[reservation.status.value] += 1
        return counts

    @staticmethod
    def _starts_at(reservation: Reservation) -> datetime:
        hour, minute = (int(part) for part in reservation.time_slot.split(":"))
        return datetime.combine(reservation.reservation_date, datetime.min.time()).replace(hour=hour, minute=minute)

    @staticmethod
    def _humanize(delta: timedelta) -> str:
        total_minutes = int(abs(delta).total_seconds() // 60)
        days, remainder = divmod(total_minutes, 24 * 60)
        hours, minutes = divmod(remainder, 60)

        def plural(value: int, unit: str) -> str:
            return f"{value} {unit}{'' if value == 1 else 's'}"

        if days:
            text = plural(days, "day")
            if hours:
                text += f" and {plural(hours, 'hour')}"
            return text
        if hours:
            return plural(hours, "hour")
        return plural(minutes, "minute")

    @staticmethod
    def _describe(reservation: Reservation) -> str:
        title = reservation.property.title if reservation.property else "the property"
        return (
            f"for '{title}' on {reservation.reservation_date.strftime(DATE_FORMAT)} "
            f"at {reservation.time_slot}"
        )
