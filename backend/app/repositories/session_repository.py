# backend/app/repositories/session_repository.py
"""
Session Repository for the coaching platform.

Data access for coaching sessions: the overlap query used by the
scheduler, ownership lookups, and the calendar listings with
capacity counts.
"""

from datetime import datetime
from enum import Enum
import json
import logging
from typing import Any, Iterable, List, Optional, Tuple, cast

from sqlalchemy import String, and_, delete, exists, func, insert, or_, select
from sqlalchemy import cast as cast_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import RepositoryException
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from ..models.coaching_session import (
    BLOCKING_SESSION_STATUSES,
    CoachingSession,
    SessionStatus,
    SessionVisibility,
    SessionWhitelistEntry,
)
from ..models.subscription import CoachSubscription
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# (session, coach_name, confirmed count, pending+confirmed count)
SessionRow = Tuple[CoachingSession, str, int, int]


class SessionRepository(BaseRepository[CoachingSession]):
    """Repository for coaching session data access."""

    def __init__(self, db: Session):
        super().__init__(db, CoachingSession)
        self.logger = logging.getLogger(__name__)

    # Scheduling queries

    def find_overlapping_session(
        self, coach_id: str, start_time: datetime, end_time: datetime
    ) -> Optional[CoachingSession]:
        """
        Return one committed session of the coach overlapping [start_time, end_time).

        Only sessions in a blocking status (available, booked) are considered.
        """
        try:
            return cast(
                Optional[CoachingSession],
                self.db.query(CoachingSession)
                .filter(
                    CoachingSession.coach_id == coach_id,
                    CoachingSession.status.in_(BLOCKING_SESSION_STATUSES),
                    CoachingSession.start_time < end_time,
                    CoachingSession.end_time > start_time,
                )
                .order_by(CoachingSession.start_time)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking session overlap: {str(e)}")
            raise RepositoryException(f"Failed to check session overlap: {str(e)}")

    def create_if_free(self, **values: Any) -> Optional[CoachingSession]:
        """
        Insert a session only while no blocking session of the coach overlaps it.

        One INSERT ... SELECT ... WHERE NOT EXISTS statement, so the overlap
        check and the write cannot interleave with another writer's.

        Returns the new session, or None when an overlapping session exists.
        """
        values = {
            key: (value.value if isinstance(value, Enum) else value)
            for key, value in values.items()
        }
        values.setdefault("id", str(ulid.ULID()))
        values.setdefault("status", SessionStatus.AVAILABLE.value)

        existing = CoachingSession.__table__.alias("existing")
        overlap = exists().where(
            existing.c.coach_id == values["coach_id"],
            existing.c.status.in_(BLOCKING_SESSION_STATUSES),
            existing.c.start_time < values["end_time"],
            existing.c.end_time > values["start_time"],
        )
        stmt = insert(CoachingSession).from_select(
            list(values), self._insert_values_select(values).where(~overlap)
        )
        if not self._execute_conditional(stmt):
            return None
        return self.get_by_id(values["id"])

    def add_whitelist_entries(self, session_id: str, student_ids: Iterable[str]) -> int:
        """Attach whitelisted students to a session. Returns number of rows added."""
        try:
            added = 0
            for student_id in dict.fromkeys(student_ids):
                self.db.add(SessionWhitelistEntry(session_id=session_id, student_id=student_id))
                added += 1
            self.db.flush()
            return added
        except SQLAlchemyError as e:
            self.logger.error(f"Error adding whitelist entries: {str(e)}")
            raise RepositoryException(f"Failed to add whitelist entries: {str(e)}")

    def get_whitelisted_student_ids(self, session_id: str) -> List[str]:
        rows = self._execute_query(
            self.db.query(SessionWhitelistEntry.student_id).filter(
                SessionWhitelistEntry.session_id == session_id
            )
        )
        return [row[0] for row in rows]

    # Ownership and counts

    def get_owned_session(
        self, session_id: str, coach_id: str, for_update: bool = False
    ) -> Optional[CoachingSession]:
        """Return the session only if it belongs to the coach."""
        if not for_update:
            return self.find_one_by(id=session_id, coach_id=coach_id)
        session = self.get_for_update(session_id)
        if session is None or session.coach_id != coach_id:
            return None
        return session

    def get_for_update(self, session_id: str) -> Optional[CoachingSession]:
        """
        Load a session with a row lock held until the transaction ends.

        Row locks apply on PostgreSQL; SQLite serializes writers instead.
        """
        try:
            return cast(
                Optional[CoachingSession],
                self.db.query(CoachingSession)
                .filter(CoachingSession.id == session_id)
                .populate_existing()
                .with_for_update()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to load session: {str(e)}") from e

    # Listings

    def list_sessions_with_counts(
        self,
        *,
        coach_id: Optional[str] = None,
        status: Optional[str] = None,
        starts_after: Optional[datetime] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        public_only: bool = False,
        viewer_student_id: Optional[str] = None,
        expertise: Optional[str] = None,
    ) -> List[SessionRow]:
        """
        List sessions with coach name and capacity counts, ordered by start time.

        ``expertise`` keeps sessions whose coach lists that tag (case-insensitive).

        Visibility:
            public_only: only public sessions
            viewer_student_id: public sessions, plus subscribers_only sessions of
                coaches the student follows, plus whitelist sessions listing the student
            neither: no visibility filter (coach viewing own sessions)
        """
        booked_count = (
            select(func.count(Booking.id))
            .where(
                Booking.session_id == CoachingSession.id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .correlate(CoachingSession)
            .scalar_subquery()
        )
        held_count = (
            select(func.count(Booking.id))
            .where(
                Booking.session_id == CoachingSession.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
            .correlate(CoachingSession)
            .scalar_subquery()
        )

        query = self.db.query(
            CoachingSession,
            User.name.label("coach_name"),
            booked_count.label("booked_count"),
            held_count.label("held_count"),
        ).join(User, User.id == CoachingSession.coach_id)

        if coach_id:
            query = query.filter(CoachingSession.coach_id == coach_id)
        if status:
            query = query.filter(CoachingSession.status == status)
        if starts_after is not None:
            query = query.filter(CoachingSession.start_time > starts_after)
        if start_from is not None:
            query = query.filter(CoachingSession.start_time >= start_from)
        if start_to is not None:
            query = query.filter(CoachingSession.start_time <= start_to)
        if expertise:
            query = query.filter(self._coach_has_expertise(expertise))

        if public_only:
            query = query.filter(CoachingSession.visibility == SessionVisibility.PUBLIC.value)
        elif viewer_student_id:
            query = query.filter(self._visible_to_student(viewer_student_id))

        rows = self._execute_query(query.order_by(CoachingSession.start_time))
        return [(row[0], row[1], int(row[2] or 0), int(row[3] or 0)) for row in rows]

    @staticmethod
    def _coach_has_expertise(tag: str):
        # Match the JSON-encoded string element inside the serialized list
        needle = json.dumps(tag.strip().lower())
        needle = needle.replace("!", "!!").replace("%", "!%").replace("_", "!_")
        return func.lower(cast_(User.expertise, String)).like(f"%{needle}%", escape="!")

    @staticmethod
    def _visible_to_student(student_id: str):
        subscribed = exists().where(
            CoachSubscription.coach_id == CoachingSession.coach_id,
            CoachSubscription.student_id == student_id,
        )
        whitelisted = exists().where(
            SessionWhitelistEntry.session_id == CoachingSession.id,
            SessionWhitelistEntry.student_id == student_id,
        )
        return or_(
            CoachingSession.visibility == SessionVisibility.PUBLIC.value,
            and_(
                CoachingSession.visibility == SessionVisibility.SUBSCRIBERS_ONLY.value,
                subscribed,
            ),
            and_(CoachingSession.visibility == SessionVisibility.WHITELIST.value, whitelisted),
        )

    # Deletion

    def delete_if_unconfirmed(self, session: CoachingSession) -> Optional[int]:
        """
        Delete a session with its bookings and whitelist rows unless a booking is confirmed.

        The session row is removed by one DELETE guarded by NOT EXISTS on
        confirmed bookings, so a confirmation committed after the caller's
        check makes this return None instead of deleting it. The caller must
        roll back in that case.

        Returns the number of bookings removed, or None when nothing was deleted.
        """
        session_id = session.id
        confirmed_exists = exists().where(
            Booking.session_id == session_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        try:
            removed = (
                self.db.query(Booking)
                .filter(
                    Booking.session_id == session_id,
                    Booking.status != BookingStatus.CONFIRMED.value,
                )
                .delete(synchronize_session=False)
            )
            self.db.query(SessionWhitelistEntry).filter(
                SessionWhitelistEntry.session_id == session_id
            ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting bookings of session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to delete session: {str(e)}") from e

        stmt = (
            delete(CoachingSession)
            .where(CoachingSession.id == session_id, ~confirmed_exists)
            .execution_options(synchronize_session=False)
        )
        if not self._execute_conditional(stmt):
            return None
        self.db.expunge(session)
        return int(removed or 0)
