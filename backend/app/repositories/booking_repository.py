# backend/app/repositories/booking_repository.py
"""
Booking Repository for the coaching platform.

Implements the persistence shapes the booking state machine needs:
- active booking lookup per (session, student)
- bookings joined with their owning session's coach
- guarded inserts and atomic conditional status transitions
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple, cast

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased, joinedload
import ulid

from ..core.exceptions import RepositoryException
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from ..models.coaching_session import CoachingSession, SessionStatus
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def find_active_booking(self, session_id: str, student_id: str) -> Optional[Booking]:
        """Return the student's pending or confirmed booking for a session, if any."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.session_id == session_id,
                    Booking.student_id == student_id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding active booking: {str(e)}")
            raise RepositoryException(f"Failed to find active booking: {str(e)}")

    def count_for_session(self, session_id: str, statuses: Sequence[str]) -> int:
        """Count bookings of a session whose status is in ``statuses``."""
        return int(
            self._execute_scalar(
                self.db.query(func.count(Booking.id)).filter(
                    Booking.session_id == session_id,
                    Booking.status.in_(list(statuses)),
                )
            )
            or 0
        )

    def get_for_coach(self, booking_id: str, coach_id: str) -> Optional[Booking]:
        """Return the booking only if its session is owned by ``coach_id``."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .join(CoachingSession, CoachingSession.id == Booking.session_id)
                .options(joinedload(Booking.session))
                .filter(Booking.id == booking_id, CoachingSession.coach_id == coach_id)
                .populate_existing()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id} for coach: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_for_student(self, booking_id: str, student_id: str) -> Optional[Booking]:
        """Return the booking only if it was requested by ``student_id``."""
        return self.find_one_by(id=booking_id, student_id=student_id)

    # Atomic transitions

    def create_if_capacity(self, session_id: str, student_id: str) -> Optional[Booking]:
        """
        Insert a pending booking only while the session has a free seat.

        Single INSERT ... SELECT:
            WHERE (pending + confirmed count for session) < session.max_students
              AND session.status = 'available'

        Returns the new booking, or None when the session is full or closed.

        Raises:
            RepositoryException: chained to IntegrityError when the student
                already holds an active booking for the session
        """
        held = aliased(Booking)
        held_count = (
            select(func.count(held.id))
            .where(held.session_id == session_id, held.status.in_(ACTIVE_BOOKING_STATUSES))
            .scalar_subquery()
        )
        capacity = (
            select(CoachingSession.max_students)
            .where(
                CoachingSession.id == session_id,
                CoachingSession.status == SessionStatus.AVAILABLE.value,
            )
            .scalar_subquery()
        )
        values = {
            "id": str(ulid.ULID()),
            "session_id": session_id,
            "student_id": student_id,
            "status": BookingStatus.PENDING.value,
        }
        stmt = insert(Booking).from_select(
            list(values), self._insert_values_select(values).where(held_count < capacity)
        )
        if not self._execute_conditional(stmt):
            return None
        return self.get_by_id(values["id"])

    def confirm_if_capacity(self, booking_id: str, session_id: str) -> bool:
        """
        Confirm a pending booking only while confirmed seats remain.

        Single conditional UPDATE:
            status = 'confirmed'
            WHERE id = :booking_id AND status = 'pending'
              AND (confirmed count for session) < session.max_students

        Returns True when the row was transitioned.
        """
        confirmed = aliased(Booking)
        confirmed_count = (
            select(func.count(confirmed.id))
            .where(
                confirmed.session_id == session_id,
                confirmed.status == BookingStatus.CONFIRMED.value,
            )
            .scalar_subquery()
        )
        capacity = (
            select(CoachingSession.max_students)
            .where(CoachingSession.id == session_id)
            .scalar_subquery()
        )
        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.PENDING.value,
                confirmed_count < capacity,
            )
            .values(status=BookingStatus.CONFIRMED.value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return self._execute_transition(stmt, booking_id)

    def transition_status(
        self, booking_id: str, from_statuses: Sequence[str], to_status: str
    ) -> bool:
        """
        Move a booking to ``to_status`` only if it is currently in ``from_statuses``.

        Returns True when the row was transitioned.
        """
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(list(from_statuses)))
            .values(status=to_status, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return self._execute_transition(stmt, booking_id)

    def _execute_transition(self, stmt: Any, booking_id: str) -> bool:
        try:
            result = self.db.execute(stmt)
            self.db.flush()
            return bool(result.rowcount == 1)
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking: {str(e)}")

    # Read side

    def list_pending_for_coach(self, coach_id: str) -> List[Tuple[Booking, CoachingSession, User]]:
        """Pending requests on the coach's sessions, newest first."""
        return cast(
            List[Tuple[Booking, CoachingSession, User]],
            self._execute_query(
                self.db.query(Booking, CoachingSession, User)
                .join(CoachingSession, CoachingSession.id == Booking.session_id)
                .join(User, User.id == Booking.student_id)
                .filter(
                    CoachingSession.coach_id == coach_id,
                    Booking.status == BookingStatus.PENDING.value,
                )
                .order_by(Booking.created_at.desc(), Booking.id.desc())
            ),
        )

    def list_for_student(self, student_id: str) -> List[Tuple[Booking, CoachingSession, User]]:
        """All bookings of a student with session and coach, ordered by session start."""
        return cast(
            List[Tuple[Booking, CoachingSession, User]],
            self._execute_query(
                self.db.query(Booking, CoachingSession, User)
                .join(CoachingSession, CoachingSession.id == Booking.session_id)
                .join(User, User.id == CoachingSession.coach_id)
                .filter(Booking.student_id == student_id)
                .order_by(CoachingSession.start_time, Booking.created_at)
            ),
        )
