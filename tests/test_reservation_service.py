# ================================
# RESERVATION SCHEDULER TESTS (tests/test_reservation_service.py)
# ================================

import pytest
import uuid
from datetime import date, timedelta
from types import SimpleNamespace
from sqlalchemy.exc import IntegrityError, OperationalError

from estate_admin.core.exceptions import (
    NotFoundError,
    AuthorizationError,
    InvalidDateError,
    InvalidSlotError,
    SlotUnavailableError,
    SlotConflictError,
    InvalidTransitionError,
    ConcurrencyConflictError
)
from estate_admin.core.time_slots import TIME_SLOTS
from estate_admin.models import Notification, Reservation, ReservationStatus, AuditLog
from estate_admin.services.rbac_service import RBACService
from estate_admin.services.reservation_service import ReservationService

from conftest import make_property, make_reservation, interfere_once


def notifications_for(db, user, title=None):
    query = db.query(Notification).filter(Notification.user_id == user.id)
    if title:
        query = query.filter(Notification.title == title)
    return query.all()


def unreachable_directory(monkeypatch):
    """Makes the staff lookup fail the way a dropped connection would."""
    def fail(db):
        raise OperationalError("SELECT users", {}, Exception("server closed the connection"))

    monkeypatch.setattr(RBACService, "get_staff_user_ids", staticmethod(fail))


class TestAvailableSlots:
    """Slot availability for one property and day."""

    def test_empty_day_offers_all_ten_slots_in_order(self, db, listing, tomorrow):
        slots = ReservationService.compute_available_slots(db, listing.id, tomorrow)

        assert slots == list(TIME_SLOTS)
        assert slots[0] == "09:00" and slots[-1] == "18:00"
        assert len(slots) == 10

    def test_reservations_of_any_status_block_their_slot(self, db, listing, visitor, tomorrow):
        make_reservation(db, listing, visitor, tomorrow, "09:00", ReservationStatus.PENDING)
        make_reservation(db, listing, visitor, tomorrow, "11:00", ReservationStatus.ACCEPTED)
        make_reservation(db, listing, visitor, tomorrow, "13:00", ReservationStatus.REFUSED)
        make_reservation(db, listing, visitor, tomorrow, "15:00", ReservationStatus.CANCELLED)

        slots = ReservationService.compute_available_slots(db, listing.id, tomorrow)

        assert slots == ["10:00", "12:00", "14:00", "16:00", "17:00", "18:00"]

    def test_other_days_and_properties_do_not_block(self, db, listing, visitor, tomorrow):
        other = make_property(db, title="Quiet House", type="house")
        make_reservation(db, other, visitor, tomorrow, "10:00")
        make_reservation(db, listing, visitor, tomorrow + timedelta(days=1), "10:00")

        assert "10:00" in ReservationService.compute_available_slots(db, listing.id, tomorrow)

    def test_repeated_calls_return_the_same_answer(self, db, listing, visitor, tomorrow):
        make_reservation(db, listing, visitor, tomorrow, "12:00")

        first = ReservationService.compute_available_slots(db, listing.id, tomorrow)
        second = ReservationService.compute_available_slots(db, listing.id, tomorrow)

        assert first == second
        assert db.query(Reservation).count() == 1


class TestCreateReservation:
    """Booking a visit."""

    def test_creates_pending_reservation_and_notifies_each_staff_member_once(
        self, db, listing, visitor, staff, tomorrow
    ):
        reservation = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")

        assert reservation.status == ReservationStatus.PENDING
        assert reservation.created_at is not None
        assert reservation.modified_at is None
        assert "10:00" not in ReservationService.compute_available_slots(db, listing.id, tomorrow)
        assert len(ReservationService.compute_available_slots(db, listing.id, tomorrow)) == 9

        notifications = db.query(Notification).filter(Notification.reservation_id == reservation.id).all()
        assert sorted(n.user_id for n in notifications) == sorted(u.id for u in staff)
        assert all(n.title == "New reservation" for n in notifications)
        assert all(not n.is_read for n in notifications)
        assert notifications_for(db, visitor) == []
        assert f"'{listing.title}'" in notifications[0].message
        assert tomorrow.strftime("%d/%m/%Y") in notifications[0].message

    def test_booking_the_same_slot_twice_fails(self, db, listing, visitor, tomorrow):
        first = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "09:00")
        assert first.status == ReservationStatus.PENDING

        with pytest.raises(SlotUnavailableError):
            ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "09:00")

        assert db.query(Reservation).count() == 1

    def test_accepts_slot_with_seconds(self, db, listing, visitor, tomorrow):
        reservation = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "14:00:00")

        assert reservation.time_slot == "14:00"

    def test_unknown_property_is_not_found(self, db, visitor, tomorrow):
        with pytest.raises(NotFoundError):
            ReservationService.create_reservation(db, uuid.uuid4(), visitor.id, tomorrow, "10:00")

    @pytest.mark.parametrize("days_from_today", [0, -1, -30])
    def test_date_must_be_after_today(self, db, listing, visitor, days_from_today):
        with pytest.raises(InvalidDateError):
            ReservationService.create_reservation(
                db, listing.id, visitor.id, date.today() + timedelta(days=days_from_today), "10:00"
            )

        assert db.query(Reservation).count() == 0

    @pytest.mark.parametrize("slot", ["", "   ", None, "08:00", "19:00", "10:30", "9:00", "noon"])
    def test_rejects_invalid_slots(self, db, listing, visitor, tomorrow, slot):
        with pytest.raises(InvalidSlotError):
            ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, slot)

        assert db.query(Reservation).count() == 0

    @pytest.mark.parametrize("status", list(ReservationStatus))
    def test_any_existing_reservation_makes_slot_unavailable(
        self, db, listing, visitor, other_visitor, tomorrow, status
    ):
        make_reservation(db, listing, other_visitor, tomorrow, "10:00", status)

        with pytest.raises(SlotUnavailableError):
            ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")

        assert db.query(Reservation).count() == 1

    def test_records_audit_entry(self, db, listing, visitor, tomorrow):
        reservation = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")

        entry = db.query(AuditLog).filter(AuditLog.resource_id == reservation.id).one()
        assert entry.action == "RESERVATION_CREATED"
        assert entry.user_id == visitor.id
        assert entry.new_values["time_slot"] == "10:00"

    def test_notification_failure_keeps_the_reservation(self, db, listing, visitor, staff, tomorrow, monkeypatch):
        real_commit = db.commit
        calls = {"count": 0}

        def flaky_commit():
            calls["count"] += 1
            if calls["count"] == 2:
                raise OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))
            return real_commit()

        monkeypatch.setattr(db, "commit", flaky_commit)
        reservation = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")
        monkeypatch.undo()

        db.expire_all()
        stored = db.get(Reservation, reservation.id)
        assert stored is not None
        assert stored.status == ReservationStatus.PENDING
        assert db.query(Notification).count() == 0

    def test_staff_lookup_failure_keeps_the_reservation(self, db, listing, visitor, staff, tomorrow, monkeypatch):
        unreachable_directory(monkeypatch)

        reservation = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")
        monkeypatch.undo()

        db.expire_all()
        stored = db.get(Reservation, reservation.id)
        assert stored.status == ReservationStatus.PENDING
        assert db.query(Reservation).count() == 1
        assert db.query(Notification).count() == 0

    def test_other_integrity_errors_are_not_slot_conflicts(self, db, listing, visitor, tomorrow, monkeypatch):
        def failing_commit():
            raise IntegrityError("INSERT INTO reservations", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(IntegrityError):
            ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")
        monkeypatch.undo()

        assert db.query(Reservation).count() == 0


class TestAccept:
    """Accepting visit requests."""

    def test_accept_sets_status_remark_and_notifies_owner(self, db, listing, visitor, admin, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        accepted = ReservationService.accept(db, reservation.id, "Bring your ID", acting_user_id=admin.id)

        assert accepted.status == ReservationStatus.ACCEPTED
        assert accepted.admin_remark == "Bring your ID"
        assert accepted.modified_at is not None

        owner_notes = notifications_for(db, visitor)
        assert len(owner_notes) == 1
        assert owner_notes[0].title == "Reservation accepted"
        assert owner_notes[0].message.endswith("Remark: Bring your ID")
        assert notifications_for(db, admin) == []

    def test_accept_without_remark_omits_it(self, db, listing, visitor, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        ReservationService.accept(db, reservation.id)

        assert "Remark" not in notifications_for(db, visitor)[0].message

    def test_second_acceptance_of_same_slot_conflicts(self, db, listing, visitor, other_visitor, tomorrow):
        first = make_reservation(db, listing, visitor, tomorrow, "10:00")
        second = make_reservation(db, listing, other_visitor, tomorrow, "10:00")

        ReservationService.accept(db, first.id)
        with pytest.raises(SlotConflictError):
            ReservationService.accept(db, second.id)

        db.expire_all()
        assert db.get(Reservation, first.id).status == ReservationStatus.ACCEPTED
        assert db.get(Reservation, second.id).status == ReservationStatus.PENDING
        assert db.get(Reservation, second.id).modified_at is None
        assert notifications_for(db, other_visitor) == []

    def test_same_slot_on_other_day_does_not_conflict(self, db, listing, visitor, tomorrow):
        make_reservation(db, listing, visitor, tomorrow, "10:00", ReservationStatus.ACCEPTED)
        later = make_reservation(db, listing, visitor, tomorrow + timedelta(days=1), "10:00")

        assert ReservationService.accept(db, later.id).status == ReservationStatus.ACCEPTED

    def test_unknown_reservation_is_not_found(self, db):
        with pytest.raises(NotFoundError):
            ReservationService.accept(db, uuid.uuid4())

    @pytest.mark.parametrize("status", [ReservationStatus.REFUSED, ReservationStatus.CANCELLED, ReservationStatus.ACCEPTED])
    def test_only_pending_reservations_can_be_accepted(self, db, listing, visitor, tomorrow, status):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00", status)

        with pytest.raises(InvalidTransitionError):
            ReservationService.accept(db, reservation.id)

        db.expire_all()
        assert db.get(Reservation, reservation.id).status == status

    def test_storage_rejects_a_racing_second_acceptance(
        self, db, listing, visitor, other_visitor, tomorrow, monkeypatch
    ):
        racing = make_reservation(db, listing, visitor, tomorrow, "10:00")
        mine = make_reservation(db, listing, other_visitor, tomorrow, "10:00")

        def accept_the_other(session):
            other = session.get(Reservation, racing.id)
            other.status = ReservationStatus.ACCEPTED

        interfere_once(monkeypatch, accept_the_other)

        with pytest.raises(SlotConflictError):
            ReservationService.accept(db, mine.id)

        db.expire_all()
        assert db.get(Reservation, racing.id).status == ReservationStatus.ACCEPTED
        assert db.get(Reservation, mine.id).status == ReservationStatus.PENDING

    @pytest.mark.parametrize("constraint, is_slot_conflict", [
        ("uq_reservations_accepted_slot", True),
        ("reservations_property_id_fkey", False),
    ])
    def test_named_constraints_are_told_apart(self, constraint, is_slot_conflict):
        orig = Exception("violation")
        orig.diag = SimpleNamespace(constraint_name=constraint)

        error = IntegrityError("UPDATE reservations", {}, orig)

        assert ReservationService._violates_accepted_slot(error) is is_slot_conflict

    def test_concurrent_edit_raises_retryable_conflict(self, db, listing, visitor, tomorrow, monkeypatch):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        def cancel_meanwhile(session):
            session.get(Reservation, reservation.id).status = ReservationStatus.CANCELLED

        interfere_once(monkeypatch, cancel_meanwhile)

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            ReservationService.accept(db, reservation.id)

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 409
        db.expire_all()
        assert db.get(Reservation, reservation.id).status == ReservationStatus.CANCELLED
        assert notifications_for(db, visitor) == []


class TestRefuse:
    """Refusing visit requests."""

    def test_refuse_sets_status_and_notifies_owner_with_reason(self, db, listing, visitor, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        refused = ReservationService.refuse(db, reservation.id, "Property under renovation")

        assert refused.status == ReservationStatus.REFUSED
        assert refused.admin_remark == "Property under renovation"
        assert refused.modified_at is not None
        notes = notifications_for(db, visitor, "Reservation refused")
        assert len(notes) == 1
        assert notes[0].message.endswith("Reason: Property under renovation")

    def test_refusing_again_restamps_and_notifies_again(self, db, listing, visitor, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        first = ReservationService.refuse(db, reservation.id, "No")
        first_stamp = first.modified_at
        second = ReservationService.refuse(db, reservation.id, "Still no")

        assert second.status == ReservationStatus.REFUSED
        assert second.admin_remark == "Still no"
        assert second.modified_at >= first_stamp
        assert len(notifications_for(db, visitor, "Reservation refused")) == 2

    @pytest.mark.parametrize("status", [ReservationStatus.ACCEPTED, ReservationStatus.CANCELLED])
    def test_accepted_or_cancelled_cannot_be_refused(self, db, listing, visitor, tomorrow, status):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00", status)

        with pytest.raises(InvalidTransitionError):
            ReservationService.refuse(db, reservation.id)

    def test_unknown_reservation_is_not_found(self, db):
        with pytest.raises(NotFoundError):
            ReservationService.refuse(db, uuid.uuid4(), "x")


class TestCancel:
    """Cancellation by the owner."""

    def test_cancel_accepted_notifies_each_staff_member_once(self, db, listing, visitor, staff, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00", ReservationStatus.ACCEPTED)

        cancelled = ReservationService.cancel(db, reservation.id, visitor.id)

        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.modified_at is not None
        notes = db.query(Notification).filter(Notification.title == "Reservation cancelled by user").all()
        assert sorted(n.user_id for n in notes) == sorted(u.id for u in staff)
        assert notifications_for(db, visitor) == []

    def test_staff_lookup_failure_keeps_the_cancellation(self, db, listing, visitor, staff, tomorrow, monkeypatch):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00", ReservationStatus.ACCEPTED)
        unreachable_directory(monkeypatch)

        ReservationService.cancel(db, reservation.id, visitor.id)
        monkeypatch.undo()

        db.expire_all()
        assert db.get(Reservation, reservation.id).status == ReservationStatus.CANCELLED
        assert db.query(Notification).count() == 0

    def test_cancel_pending_notifies_nobody(self, db, listing, visitor, staff, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        ReservationService.cancel(db, reservation.id, visitor.id)

        assert db.query(Notification).count() == 0

    def test_cancelled_slot_stays_blocked(self, db, listing, visitor, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        ReservationService.cancel(db, reservation.id, visitor.id)

        assert "10:00" not in ReservationService.compute_available_slots(db, listing.id, tomorrow)

    @pytest.mark.parametrize("status", [ReservationStatus.REFUSED, ReservationStatus.CANCELLED])
    def test_terminal_reservations_cannot_be_cancelled(self, db, listing, visitor, tomorrow, status):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00", status)

        with pytest.raises(InvalidTransitionError):
            ReservationService.cancel(db, reservation.id, visitor.id)

        db.expire_all()
        stored = db.get(Reservation, reservation.id)
        assert stored.status == status
        assert stored.modified_at is None

    def test_only_the_owner_can_cancel(self, db, listing, visitor, other_visitor, tomorrow):
        reservation = make_reservation(db, listing, visitor, tomorrow, "10:00")

        with pytest.raises(AuthorizationError):
            ReservationService.cancel(db, reservation.id, other_visitor.id)

        db.expire_all()
        assert db.get(Reservation, reservation.id).status == ReservationStatus.PENDING

    def test_unknown_reservation_is_not_found(self, db, visitor):
        with pytest.raises(NotFoundError):
            ReservationService.cancel(db, uuid.uuid4(), visitor.id)


class TestQueries:
    """Listings, counters and the advisory check."""

    def test_staff_list_orders_today_then_upcoming_then_past(self, db, listing, visitor):
        today = date.today()
        past = make_reservation(db, listing, visitor, today - timedelta(days=2), "09:00", ReservationStatus.ACCEPTED)
        later = make_reservation(db, listing, visitor, today + timedelta(days=5), "09:00")
        soon_late = make_reservation(db, listing, visitor, today + timedelta(days=1), "15:00")
        soon_early = make_reservation(db, listing, visitor, today + timedelta(days=1), "09:00")
        now = make_reservation(db, listing, visitor, today, "11:00", ReservationStatus.ACCEPTED)

        result = ReservationService.list_reservations(db)

        assert [r.id for r in result["items"]] == [now.id, soon_early.id, soon_late.id, later.id, past.id]
        assert result["total"] == 5
        assert result["counts"] == {"pending": 3, "accepted": 2, "refused": 0, "cancelled": 0, "today": 1}

    def test_staff_list_filters(self, db, listing, visitor, other_visitor, tomorrow):
        villa = make_property(db, title="Seaside Villa", type="villa")
        make_reservation(db, listing, visitor, tomorrow, "09:00")
        make_reservation(db, villa, other_visitor, tomorrow, "10:00", ReservationStatus.REFUSED)
        make_reservation(db, villa, visitor, tomorrow + timedelta(days=10), "10:00")

        assert ReservationService.list_reservations(db, search="seaside")["total"] == 2
        assert ReservationService.list_reservations(db, search="bob@")["total"] == 1
        assert ReservationService.list_reservations(db, status=ReservationStatus.REFUSED)["total"] == 1
        assert ReservationService.list_reservations(
            db, date_from=tomorrow + timedelta(days=1)
        )["total"] == 1
        assert ReservationService.list_reservations(db, date_to=tomorrow)["total"] == 2

    def test_my_reservations_counts(self, db, listing, visitor, other_visitor):
        today = date.today()
        make_reservation(db, listing, visitor, today + timedelta(days=3), "09:00", ReservationStatus.ACCEPTED)
        make_reservation(db, listing, visitor, today - timedelta(days=3), "09:00", ReservationStatus.ACCEPTED)
        make_reservation(db, listing, visitor, today + timedelta(days=4), "09:00")
        make_reservation(db, listing, other_visitor, today + timedelta(days=4), "10:00")

        result = ReservationService.my_reservations(db, visitor.id)

        assert result["total"] == 3
        assert result["counts"] == {"pending": 1, "accepted": 2, "upcoming": 1}

    def test_advisory_reports_closest_accepted_visit_of_same_user(self, db, listing, visitor, tomorrow):
        candidate = make_reservation(db, listing, visitor, tomorrow, "10:00")
        make_reservation(db, listing, visitor, tomorrow + timedelta(days=1), "13:00", ReservationStatus.ACCEPTED)
        make_reservation(db, listing, visitor, tomorrow + timedelta(days=4), "10:00", ReservationStatus.ACCEPTED)

        result = ReservationService.check_advisory_conflict(db, candidate.id)

        assert result["has_conflict"] is True
        assert "1 day and 3 hours after" in result["message"]
        assert result["conflicting_time_slot"] == "13:00"
        assert result["conflicting_date"] == tomorrow + timedelta(days=1)

    def test_advisory_earlier_visit_reads_before(self, db, listing, visitor):
        base = date.today() + timedelta(days=3)
        candidate = make_reservation(db, listing, visitor, base, "15:00")
        make_reservation(db, listing, visitor, base, "12:00", ReservationStatus.ACCEPTED)

        result = ReservationService.check_advisory_conflict(db, candidate.id)

        assert "3 hours before" in result["message"]

    def test_advisory_ignores_other_users_pending_and_far_visits(
        self, db, listing, visitor, other_visitor, tomorrow
    ):
        candidate = make_reservation(db, listing, visitor, tomorrow, "10:00")
        make_reservation(db, listing, other_visitor, tomorrow, "11:00", ReservationStatus.ACCEPTED)
        make_reservation(db, listing, visitor, tomorrow, "12:00", ReservationStatus.PENDING)
        make_reservation(db, listing, visitor, tomorrow + timedelta(days=30), "10:00", ReservationStatus.ACCEPTED)

        assert ReservationService.check_advisory_conflict(db, candidate.id) == {"has_conflict": False}

    def test_advisory_never_blocks_acceptance(self, db, listing, visitor, tomorrow):
        candidate = make_reservation(db, listing, visitor, tomorrow, "10:00")
        make_reservation(db, listing, visitor, tomorrow, "11:00", ReservationStatus.ACCEPTED)

        assert ReservationService.check_advisory_conflict(db, candidate.id)["has_conflict"] is True
        assert ReservationService.accept(db, candidate.id).status == ReservationStatus.ACCEPTED

    def test_delete_removes_reservation_and_its_notifications(self, db, listing, visitor, staff, admin, tomorrow):
        reservation = ReservationService.create_reservation(db, listing.id, visitor.id, tomorrow, "10:00")
        assert db.query(Notification).count() == len(staff)

        ReservationService.delete_reservation(db, reservation.id, admin.id)

        assert db.query(Reservation).count() == 0
        assert db.query(Notification).count() == 0
        assert "10:00" in ReservationService.compute_available_slots(db, listing.id, tomorrow)
