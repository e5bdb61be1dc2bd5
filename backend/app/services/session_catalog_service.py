# backend/app/services/session_catalog_service.py
"""
Session discovery for calendars and listings.

Applies visibility rules on top of SessionRepository listings and derives
each session's capacity-based availability.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import AvailabilityStatus
from ..core.exceptions import ValidationException
from ..core.timezone_utils import to_naive_utc, utc_now
from ..models.coaching_session import CoachingSession, SessionStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.session_repository import SessionRepository, SessionRow
from .base import BaseService

logger = logging.getLogger(__name__)


def derive_availability(max_students: int, booked_count: int, held_count: int) -> AvailabilityStatus:
    """Capacity-derived availability: booked when every seat is held."""
    if held_count >= max_students:
        return AvailabilityStatus.BOOKED
    if booked_count > 0:
        return AvailabilityStatus.PARTIALLY_BOOKED
    return AvailabilityStatus.AVAILABLE


@dataclass
class SessionListing:
    """A session as shown on a calendar."""

    session: CoachingSession
    coach_name: str
    booked_count: int
    held_count: int

    @property
    def availability_status(self) -> AvailabilityStatus:
        return derive_availability(self.session.max_students, self.booked_count, self.held_count)

    @classmethod
    def from_row(cls, row: SessionRow) -> "SessionListing":
        session, coach_name, booked_count, held_count = row
        return cls(session, coach_name, booked_count, held_count)


class SessionCatalogService(BaseService):
    """Read-only service answering "which sessions can this viewer see"."""

    def __init__(self, db: Session, session_repository: Optional[SessionRepository] = None):
        super().__init__(db)
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )

    @BaseService.measure_operation("list_visible_sessions")
    def list_visible_sessions(
        self,
        viewer: Optional[User],
        coach_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        upcoming_only: bool = True,
        expertise: Optional[str] = None,
    ) -> List[SessionListing]:
        """
        List open sessions the viewer is allowed to see.

        Args:
            viewer: Authenticated user, or None for anonymous callers
            coach_id: Restrict to one coach
            start_date: Inclusive lower bound on start_time
            end_date: Inclusive upper bound on start_time
            upcoming_only: Only sessions starting after now
            expertise: Only sessions of coaches listing this expertise tag

        Returns:
            Listings ordered by start time
        """
        start_from = to_naive_utc(start_date) if start_date else None
        start_to = to_naive_utc(end_date) if end_date else None
        if start_from and start_to and start_to < start_from:
            raise ValidationException("end_date must not be before start_date")

        own_calendar = bool(viewer and viewer.is_coach and coach_id == viewer.id)
        viewer_student_id = viewer.id if viewer is not None and viewer.is_student else None

        rows = self.session_repository.list_sessions_with_counts(
            coach_id=coach_id,
            status=SessionStatus.AVAILABLE.value,
            starts_after=utc_now() if upcoming_only else None,
            start_from=start_from,
            start_to=start_to,
            public_only=not own_calendar and viewer_student_id is None,
            viewer_student_id=None if own_calendar else viewer_student_id,
            expertise=expertise.strip() if expertise and expertise.strip() else None,
        )
        return [SessionListing.from_row(row) for row in rows]

    @staticmethod
    def to_listings(rows: List[SessionRow]) -> List[SessionListing]:
        return [SessionListing.from_row(row) for row in rows]
