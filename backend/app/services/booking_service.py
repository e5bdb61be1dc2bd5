# backend/app/services/booking_service.py
"""
Booking Service for the coaching platform.

Implements the booking state machine:

    pending ──approve──▶ confirmed
    pending ──reject───▶ cancelled
    pending/confirmed ──cancel──▶ cancelled

Nothing leaves cancelled. A rejected or cancelled student may request
the same session again, which creates a new pending booking.

Capacity-dependent writes for one session run under that session's
capacity lock. The request insert and the approval update are also single
guarded statements so they stay correct across processes sharing the
database.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.booking_lock import session_capacity_lock
from ..core.constants import ERROR_BOOKING_NOT_FOUND
from ..core.exceptions import (
    AlreadyRequestedException,
    CapacityException,
    InvalidBookingStateException,
    NotFoundException,
    RepositoryException,
)
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from ..models.coaching_session import CoachingSession, SessionStatus
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from .base import BaseService

logger = logging.getLogger(__name__)

BookingRow = Tuple[Booking, CoachingSession, User]


class BookingService(BaseService):
    """
    Service layer for booking requests and coach decisions.

    Ownership failures surface as NotFoundException so callers cannot
    discover other users' bookings.
    """

    def __init__(
        self,
        db: Session,
        booking_repository: Optional[BookingRepository] = None,
        session_repository: Optional[SessionRepository] = None,
    ):
        super().__init__(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )

    @BaseService.measure_operation("request_booking")
    def request_booking(self, session_id: str, student_id: str) -> Booking:
        """
        Create a pending booking for a student.

        Args:
            session_id: Session to join
            student_id: Requesting student

        Returns:
            The new pending booking

        Raises:
            NotFoundException: Session missing or not open for booking
            AlreadyRequestedException: Student already holds an active booking
            CapacityException: Pending plus confirmed bookings fill the session
        """
        with session_capacity_lock(session_id):
            with self.transaction():
                session = self.session_repository.get_for_update(session_id)
                if session is None or session.status != SessionStatus.AVAILABLE.value:
                    raise NotFoundException(
                        "Session not found or not available",
                        details={"session_id": session_id},
                    )

                if self.booking_repository.find_active_booking(session_id, student_id):
                    raise AlreadyRequestedException(session_id)

                held = self.booking_repository.count_for_session(
                    session_id, ACTIVE_BOOKING_STATUSES
                )
                if held >= session.max_students:
                    raise CapacityException(
                        "Session is full",
                        session_id=session_id,
                        max_students=session.max_students,
                    )

                try:
                    booking = self.booking_repository.create_if_capacity(session_id, student_id)
                except RepositoryException as exc:
                    # Partial unique index on active (session, student) pairs
                    if isinstance(exc.__cause__, IntegrityError):
                        raise AlreadyRequestedException(session_id) from exc
                    raise
                if booking is None:
                    # Seats taken by a writer outside this process after the count
                    raise CapacityException(
                        "Session is full",
                        session_id=session_id,
                        max_students=session.max_students,
                    )

        self.booking_repository.refresh(booking)
        self._emit("requested", booking, held_before=held)
        return booking

    @BaseService.measure_operation("approve_booking")
    def approve_booking(self, booking_id: str, coach_id: str) -> Booking:
        """
        Confirm a pending booking on one of the coach's sessions.

        Capacity is re-checked against confirmed bookings only.

        Raises:
            NotFoundException: Booking missing or session owned by another coach
            InvalidBookingStateException: Booking is not pending
            CapacityException: All seats are already confirmed
        """
        booking = self._get_for_coach(booking_id, coach_id)

        with session_capacity_lock(booking.session_id):
            with self.transaction():
                booking = self._lock_for_decision(booking, coach_id)
                self._require_pending(booking, "approved")

                if not self.booking_repository.confirm_if_capacity(booking.id, booking.session_id):
                    # Session deleted or booking moved by a writer outside this process
                    booking = self._get_for_coach(booking_id, coach_id)
                    self._require_pending(booking, "approved")
                    raise CapacityException(
                        "Session is full",
                        session_id=booking.session_id,
                        max_students=booking.session.max_students,
                    )

        self.booking_repository.refresh(booking)
        self._emit("approved", booking, coach_id=coach_id)
        return booking

    @BaseService.measure_operation("reject_booking")
    def reject_booking(self, booking_id: str, coach_id: str) -> Booking:
        """
        Decline a pending booking on one of the coach's sessions.

        Raises:
            NotFoundException: Booking missing or session owned by another coach
            InvalidBookingStateException: Booking is not pending
        """
        booking = self._get_for_coach(booking_id, coach_id)

        with session_capacity_lock(booking.session_id):
            with self.transaction():
                booking = self._lock_for_decision(booking, coach_id)
                self._require_pending(booking, "rejected")

                moved = self.booking_repository.transition_status(
                    booking.id,
                    [BookingStatus.PENDING.value],
                    BookingStatus.CANCELLED.value,
                )
                if not moved:
                    booking = self._get_for_coach(booking_id, coach_id)
                    raise InvalidBookingStateException(booking.id, booking.status, "rejected")

        self.booking_repository.refresh(booking)
        self._emit("rejected", booking, coach_id=coach_id)
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, student_id: str) -> Booking:
        """
        Withdraw a pending request or cancel a confirmed booking.

        Cancelling an already-cancelled booking returns it unchanged.

        Raises:
            NotFoundException: Booking missing or owned by another student
        """
        booking = self.booking_repository.get_for_student(booking_id, student_id)
        if booking is None:
            raise NotFoundException(ERROR_BOOKING_NOT_FOUND, details={"booking_id": booking_id})

        if booking.status == BookingStatus.CANCELLED.value:
            self.logger.debug("Booking %s already cancelled", booking_id)
            return booking

        with session_capacity_lock(booking.session_id):
            with self.transaction():
                previous_status = booking.status
                moved = self.booking_repository.transition_status(
                    booking.id,
                    ACTIVE_BOOKING_STATUSES,
                    BookingStatus.CANCELLED.value,
                )

        self.booking_repository.refresh(booking)
        if moved:
            self._emit("cancelled", booking, previous_status=previous_status)
        return booking

    @BaseService.measure_operation("list_pending_for_coach")
    def list_pending_for_coach(self, coach_id: str) -> List[BookingRow]:
        """Pending requests on the coach's sessions, newest first."""
        return self.booking_repository.list_pending_for_coach(coach_id)

    @BaseService.measure_operation("list_for_student")
    def list_for_student(self, student_id: str) -> List[BookingRow]:
        """The student's bookings with session and coach, ordered by session start."""
        return self.booking_repository.list_for_student(student_id)

    # Helpers

    def _get_for_coach(self, booking_id: str, coach_id: str) -> Booking:
        booking = self.booking_repository.get_for_coach(booking_id, coach_id)
        if booking is None:
            raise NotFoundException(ERROR_BOOKING_NOT_FOUND, details={"booking_id": booking_id})
        return booking

    def _lock_for_decision(self, booking: Booking, coach_id: str) -> Booking:
        """Lock the session row and reload the booking; the session may be gone by now."""
        self.session_repository.get_for_update(booking.session_id)
        return self._get_for_coach(booking.id, coach_id)

    @staticmethod
    def _require_pending(booking: Booking, action: str) -> None:
        if booking.status != BookingStatus.PENDING.value:
            raise InvalidBookingStateException(booking.id, booking.status, action)

    def _emit(self, transition: str, booking: Booking, **context) -> None:
        prometheus_metrics.record_booking_transition(transition)
        self.log_operation(
            f"booking.{transition}",
            booking_id=booking.id,
            session_id=booking.session_id,
            student_id=booking.student_id,
            status=booking.status,
            **context,
        )
