# backend/tests/unit/services/test_booking_service.py
"""
Tests for the booking state machine.

pending -> confirmed (approve), pending -> cancelled (reject),
pending/confirmed -> cancelled (cancel).
"""

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import booking_lock
from app.core.exceptions import (
    AlreadyRequestedException,
    CapacityException,
    InvalidBookingStateException,
    NotFoundException,
    RepositoryException,
)
from app.models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from app.models.coaching_session import SessionStatus
from app.services.booking_service import BookingService

START = datetime(2025, 3, 3, 9, 0)


def _held(db, session_id):
    db.expire_all()
    return (
        db.query(Booking)
        .filter(Booking.session_id == session_id, Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .count()
    )


@pytest.fixture
def service(db):
    return BookingService(db)


@pytest.fixture
def two_seat_session(make_session, coach):
    return make_session(coach, START, max_students=2)


class TestRequestBooking:
    def test_request_creates_pending_booking(self, service, two_seat_session, student):
        booking = service.request_booking(two_seat_session.id, student.id)

        assert booking.status == BookingStatus.PENDING.value
        assert booking.session_id == two_seat_session.id
        assert booking.student_id == student.id
        assert booking.created_at is not None

    def test_capacity_counts_pending_requests(
        self, service, two_seat_session, student, other_student, third_student, db
    ):
        """Two of three requests fit; the third fails without persisting."""
        service.request_booking(two_seat_session.id, student.id)
        service.request_booking(two_seat_session.id, other_student.id)

        with pytest.raises(CapacityException) as exc_info:
            service.request_booking(two_seat_session.id, third_student.id)

        assert exc_info.value.code == "SESSION_FULL"
        assert _held(db, two_seat_session.id) == 2
        assert db.query(Booking).filter(Booking.student_id == third_student.id).count() == 0

    def test_double_request_rejected(self, service, two_seat_session, student, db):
        service.request_booking(two_seat_session.id, student.id)

        with pytest.raises(AlreadyRequestedException) as exc_info:
            service.request_booking(two_seat_session.id, student.id)

        assert exc_info.value.code == "ALREADY_REQUESTED"
        assert _held(db, two_seat_session.id) == 1

    def test_confirmed_booking_also_blocks_new_request(
        self, service, two_seat_session, student, make_booking
    ):
        make_booking(two_seat_session, student, BookingStatus.CONFIRMED)

        with pytest.raises(AlreadyRequestedException):
            service.request_booking(two_seat_session.id, student.id)

    def test_missing_session(self, service, student):
        with pytest.raises(NotFoundException):
            service.request_booking("01JNOTAREALSESSIONID000000", student.id)

    @pytest.mark.parametrize("status", [SessionStatus.BOOKED, SessionStatus.CANCELLED])
    def test_session_not_available(self, service, make_session, coach, student, status):
        session = make_session(coach, START, status=status)

        with pytest.raises(NotFoundException):
            service.request_booking(session.id, student.id)

    def test_request_after_rejection(
        self, service, two_seat_session, coach, student, db
    ):
        """A rejected student may request the same session again."""
        first = service.request_booking(two_seat_session.id, student.id)
        service.reject_booking(first.id, coach.id)

        second = service.request_booking(two_seat_session.id, student.id)

        assert second.id != first.id
        assert second.status == BookingStatus.PENDING.value
        db.expire_all()
        assert db.get(Booking, first.id).status == BookingStatus.CANCELLED.value

    def test_unique_index_violation_maps_to_already_requested(self, student):
        """A racing insert hitting the partial unique index surfaces as already requested."""
        session = Mock(id="s1", status=SessionStatus.AVAILABLE.value, max_students=5)
        session_repository = Mock()
        session_repository.get_for_update.return_value = session
        booking_repository = Mock()
        booking_repository.find_active_booking.return_value = None
        booking_repository.count_for_session.return_value = 0

        integrity = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        failure = RepositoryException("Integrity constraint violated")
        failure.__cause__ = integrity
        booking_repository.create_if_capacity.side_effect = failure

        service = BookingService(
            Mock(spec=Session),
            booking_repository=booking_repository,
            session_repository=session_repository,
        )

        with pytest.raises(AlreadyRequestedException):
            service.request_booking("s1", student.id)

    def test_guarded_insert_refusal_maps_to_capacity(self, student):
        """Seats filled by another worker between the count and the insert."""
        session = Mock(id="s1", status=SessionStatus.AVAILABLE.value, max_students=2)
        session_repository = Mock()
        session_repository.get_for_update.return_value = session
        booking_repository = Mock()
        booking_repository.find_active_booking.return_value = None
        booking_repository.count_for_session.return_value = 1
        booking_repository.create_if_capacity.return_value = None

        service = BookingService(
            Mock(spec=Session),
            booking_repository=booking_repository,
            session_repository=session_repository,
        )

        with pytest.raises(CapacityException) as exc_info:
            service.request_booking("s1", student.id)

        assert exc_info.value.details == {"session_id": "s1", "max_students": 2}

    def test_many_sessions_leave_no_lock_entries(self, service, make_session, coach, student):
        sessions = [make_session(coach, START + timedelta(hours=2 * i)) for i in range(50)]

        for session in sessions:
            service.request_booking(session.id, student.id)

        assert booking_lock._LOCKS == {}


class TestApproveBooking:
    def test_approve_both_pending_requests(
        self, service, two_seat_session, coach, student, other_student, db
    ):
        first = service.request_booking(two_seat_session.id, student.id)
        second = service.request_booking(two_seat_session.id, other_student.id)

        assert service.approve_booking(first.id, coach.id).status == "confirmed"
        assert service.approve_booking(second.id, coach.id).status == "confirmed"

        db.expire_all()
        confirmed = (
            db.query(Booking)
            .filter(
                Booking.session_id == two_seat_session.id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .count()
        )
        assert confirmed == 2

    def test_approval_beyond_capacity_leaves_booking_pending(
        self,
        service,
        two_seat_session,
        coach,
        student,
        other_student,
        third_student,
        make_booking,
        db,
    ):
        make_booking(two_seat_session, student, BookingStatus.CONFIRMED)
        make_booking(two_seat_session, other_student, BookingStatus.CONFIRMED)
        extra = make_booking(two_seat_session, third_student, BookingStatus.PENDING)

        with pytest.raises(CapacityException):
            service.approve_booking(extra.id, coach.id)

        db.expire_all()
        assert db.get(Booking, extra.id).status == BookingStatus.PENDING.value

    def test_approve_requires_pending(self, service, two_seat_session, coach, student):
        booking = service.request_booking(two_seat_session.id, student.id)
        service.approve_booking(booking.id, coach.id)

        with pytest.raises(InvalidBookingStateException) as exc_info:
            service.approve_booking(booking.id, coach.id)

        assert exc_info.value.details["current_status"] == "confirmed"

    def test_other_coach_gets_not_found(
        self, service, two_seat_session, other_coach, student, db
    ):
        booking = service.request_booking(two_seat_session.id, student.id)

        with pytest.raises(NotFoundException):
            service.approve_booking(booking.id, other_coach.id)

        db.expire_all()
        assert db.get(Booking, booking.id).status == BookingStatus.PENDING.value

    def test_unknown_booking(self, service, coach):
        with pytest.raises(NotFoundException):
            service.approve_booking("01JNOTAREALBOOKINGID000000", coach.id)

    def test_session_deleted_while_waiting_for_lock(self, coach):
        """The booking is re-read under the lock; a vanished booking is a 404."""
        booking = Mock(id="b1", session_id="s1", status=BookingStatus.PENDING.value)
        booking_repository = Mock()
        booking_repository.get_for_coach.side_effect = [booking, None]
        session_repository = Mock()
        session_repository.get_for_update.return_value = None

        service = BookingService(
            Mock(spec=Session),
            booking_repository=booking_repository,
            session_repository=session_repository,
        )

        with pytest.raises(NotFoundException):
            service.approve_booking("b1", coach.id)

        booking_repository.confirm_if_capacity.assert_not_called()


class TestRejectBooking:
    def test_reject_pending(self, service, two_seat_session, coach, student):
        booking = service.request_booking(two_seat_session.id, student.id)

        rejected = service.reject_booking(booking.id, coach.id)

        assert rejected.status == BookingStatus.CANCELLED.value

    def test_second_reject_fails_with_state_error(
        self, service, two_seat_session, coach, student
    ):
        booking = service.request_booking(two_seat_session.id, student.id)
        service.reject_booking(booking.id, coach.id)

        with pytest.raises(InvalidBookingStateException) as exc_info:
            service.reject_booking(booking.id, coach.id)

        assert exc_info.value.message == "Only pending bookings can be rejected"

    def test_reject_confirmed_fails(self, service, two_seat_session, coach, student):
        booking = service.request_booking(two_seat_session.id, student.id)
        service.approve_booking(booking.id, coach.id)

        with pytest.raises(InvalidBookingStateException):
            service.reject_booking(booking.id, coach.id)

    def test_reject_frees_capacity(
        self, service, make_session, coach, student, other_student
    ):
        session = make_session(coach, START, max_students=1)
        booking = service.request_booking(session.id, student.id)
        service.reject_booking(booking.id, coach.id)

        replacement = service.request_booking(session.id, other_student.id)

        assert replacement.status == BookingStatus.PENDING.value


class TestCancelBooking:
    @pytest.mark.parametrize("initial", [BookingStatus.PENDING, BookingStatus.CONFIRMED])
    def test_cancel_active_booking(
        self, service, two_seat_session, student, make_booking, initial
    ):
        booking = make_booking(two_seat_session, student, initial)

        cancelled = service.cancel_booking(booking.id, student.id)

        assert cancelled.status == BookingStatus.CANCELLED.value

    def test_cancel_is_idempotent(self, service, two_seat_session, student, make_booking):
        booking = make_booking(two_seat_session, student, BookingStatus.CANCELLED)
        updated_at = booking.updated_at

        again = service.cancel_booking(booking.id, student.id)

        assert again.id == booking.id
        assert again.status == BookingStatus.CANCELLED.value
        assert again.updated_at == updated_at

    def test_other_student_gets_not_found(
        self, service, two_seat_session, student, other_student, make_booking, db
    ):
        booking = make_booking(two_seat_session, student, BookingStatus.PENDING)

        with pytest.raises(NotFoundException):
            service.cancel_booking(booking.id, other_student.id)

        db.expire_all()
        assert db.get(Booking, booking.id).status == BookingStatus.PENDING.value

    def test_coach_cannot_cancel_as_student(
        self, service, two_seat_session, coach, student, make_booking
    ):
        booking = make_booking(two_seat_session, student, BookingStatus.PENDING)

        with pytest.raises(NotFoundException):
            service.cancel_booking(booking.id, coach.id)


class TestCapacityMonotonicity:
    def test_held_never_exceeds_capacity_through_lifecycle(
        self, service, make_session, coach, student, other_student, third_student, db
    ):
        session = make_session(coach, START, max_students=2)
        students = [student, other_student, third_student]
        bookings = []

        for each in students:
            try:
                bookings.append(service.request_booking(session.id, each.id))
            except CapacityException:
                pass
            assert _held(db, session.id) <= 2

        service.approve_booking(bookings[0].id, coach.id)
        assert _held(db, session.id) <= 2

        service.cancel_booking(bookings[1].id, bookings[1].student_id)
        bookings.append(service.request_booking(session.id, third_student.id))
        assert _held(db, session.id) == 2

        with pytest.raises(CapacityException):
            service.request_booking(session.id, other_student.id)
        assert _held(db, session.id) == 2


class TestReadSide:
    def test_pending_for_coach_lists_only_pending(
        self, service, make_session, coach, other_coach, student, other_student, make_booking
    ):
        mine = make_session(coach, START, max_students=3)
        theirs = make_session(other_coach, START)
        pending = make_booking(mine, student, BookingStatus.PENDING)
        make_booking(mine, other_student, BookingStatus.CONFIRMED)
        make_booking(theirs, student, BookingStatus.PENDING)

        rows = service.list_pending_for_coach(coach.id)

        assert [(b.id, s.id, u.id) for b, s, u in rows] == [(pending.id, mine.id, student.id)]

    def test_student_bookings_ordered_by_session_start(
        self, service, make_session, coach, other_coach, student, make_booking
    ):
        later = make_session(coach, START + timedelta(days=2))
        sooner = make_session(other_coach, START)
        make_booking(later, student, BookingStatus.PENDING)
        make_booking(sooner, student, BookingStatus.CANCELLED)

        rows = service.list_for_student(student.id)

        assert [s.id for _, s, _ in rows] == [sooner.id, later.id]
        assert [c.id for _, _, c in rows] == [other_coach.id, coach.id]
