# backend/app/services/session_scheduler.py
"""
Session Scheduler for the coaching platform.

Expands a session template plus a recurrence rule into concrete
occurrences and persists each one that does not overlap an existing
session of the same coach. Occurrences are processed strictly in order,
each in its own transaction, so an overlap on one occurrence never
affects the others. The result reports which occurrences were created
and which were skipped.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.booking_lock import coach_schedule_lock, session_capacity_lock
from ..core.config import settings
from ..core.constants import (
    ERROR_COACH_NOT_FOUND,
    ERROR_CONFIRMED_BOOKINGS,
    ERROR_INVALID_TIME_RANGE,
    ERROR_SESSION_NOT_FOUND,
)
from ..core.enums import RepeatInterval, ScheduleOutcome
from ..core.exceptions import (
    BusinessRuleException,
    NotFoundException,
    SessionOverlapException,
    ValidationException,
)
from ..models.booking import BookingStatus
from ..models.coaching_session import CoachingSession, SessionVisibility
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.session_repository import SessionRepository, SessionRow
from ..repositories.user_repository import UserRepository
from ..schemas.session import ConflictDescriptor, CreateSessionRequest
from .base import BaseService

logger = logging.getLogger(__name__)


def clamp_occurrences(requested: int, upper_bound: Optional[int] = None) -> int:
    """Clamp a requested occurrence count to [1, upper_bound]."""
    limit = upper_bound if upper_bound is not None else settings.max_recurring_occurrences
    return max(1, min(int(requested), limit))


def occurrence_offset(repeat_interval: RepeatInterval, index: int) -> timedelta:
    """Offset of occurrence ``index`` from the template window."""
    if repeat_interval == RepeatInterval.DAILY:
        return timedelta(days=index)
    if repeat_interval == RepeatInterval.WEEKLY:
        return timedelta(days=7 * index)
    return timedelta(0)


def expand_occurrences(
    start_time: datetime,
    end_time: datetime,
    repeat_interval: RepeatInterval,
    occurrences: int,
) -> List[Tuple[datetime, datetime]]:
    """Candidate windows for a recurrence rule, in order."""
    windows = []
    for index in range(occurrences):
        offset = occurrence_offset(repeat_interval, index)
        windows.append((start_time + offset, end_time + offset))
    return windows


@dataclass
class SessionScheduleResult:
    """Created sessions and skipped occurrences of one creation request."""

    requested_occurrences: int
    created: List[CoachingSession] = field(default_factory=list)
    skipped: List[ConflictDescriptor] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def outcome(self) -> ScheduleOutcome:
        if not self.created:
            return ScheduleOutcome.CONFLICT
        if self.skipped:
            return ScheduleOutcome.PARTIAL
        return ScheduleOutcome.CREATED

    @property
    def message(self) -> str:
        created, skipped = self.created_count, self.skipped_count
        if created == 0:
            return (
                f"No sessions created. All {skipped} occurrence(s) "
                "conflict with existing sessions."
            )
        if skipped:
            return f"Created {created} session(s). Skipped {skipped} due to conflicts."
        if self.requested_occurrences == 1:
            return "Session created successfully"
        return f"Created {created} session(s)"


class SessionScheduler(BaseService):
    """
    Service owning session creation and deletion.

    Overlap check and insert for one coach run under the coach's
    schedule lock so two concurrent requests cannot both pass the check.
    """

    def __init__(
        self,
        db: Session,
        session_repository: Optional[SessionRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        super().__init__(db)
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("create_sessions")
    def create_sessions(self, coach_id: str, request: CreateSessionRequest) -> SessionScheduleResult:
        """
        Create one session or a recurring series.

        Args:
            coach_id: Owning coach
            request: Validated template and recurrence rule

        Returns:
            SessionScheduleResult with created sessions and skipped occurrences

        Raises:
            ValidationException: Invalid template (nothing is written)
            NotFoundException: Coach does not exist
        """
        self._validate_template(request)
        if self.user_repository.get_coach(coach_id) is None:
            raise NotFoundException(ERROR_COACH_NOT_FOUND, details={"coach_id": coach_id})

        count = clamp_occurrences(request.occurrences)
        repeat_interval = RepeatInterval(request.repeat_interval)
        visibility = SessionVisibility(request.visibility)
        whitelist_ids = (
            self._resolve_whitelist(request.whitelist_student_ids)
            if visibility == SessionVisibility.WHITELIST
            else []
        )

        result = SessionScheduleResult(requested_occurrences=count)
        windows = expand_occurrences(request.start_time, request.end_time, repeat_interval, count)

        with coach_schedule_lock(coach_id):
            for index, (start_time, end_time) in enumerate(windows):
                try:
                    session = self._create_occurrence(
                        coach_id, request, start_time, end_time, whitelist_ids
                    )
                except SessionOverlapException as exc:
                    result.skipped.append(
                        ConflictDescriptor(
                            index=index,
                            start_time=start_time,
                            end_time=end_time,
                            conflicting_session_id=exc.details.get("conflicting_session_id"),
                        )
                    )
                    prometheus_metrics.record_schedule_occurrence("skipped")
                    self.logger.info(
                        "session.occurrence_skipped",
                        extra={
                            "coach_id": coach_id,
                            "index": index,
                            "conflicting_session_id": exc.details.get("conflicting_session_id"),
                        },
                    )
                    continue

                result.created.append(session)
                prometheus_metrics.record_schedule_occurrence("created")
                if len(result.created) == 1:
                    self._announce(session, visibility, whitelist_ids)

        self.logger.info(
            "session.schedule_completed",
            extra={
                "coach_id": coach_id,
                "requested": count,
                "created_count": result.created_count,
                "skipped_count": result.skipped_count,
                "outcome": result.outcome.value,
            },
        )
        return result

    def _create_occurrence(
        self,
        coach_id: str,
        request: CreateSessionRequest,
        start_time: datetime,
        end_time: datetime,
        whitelist_ids: Sequence[str],
    ) -> CoachingSession:
        """Insert one occurrence, or raise SessionOverlapException without writing."""
        with self.transaction():
            self.user_repository.lock_coach(coach_id)
            clash = self.session_repository.find_overlapping_session(coach_id, start_time, end_time)
            if clash is not None:
                raise SessionOverlapException(
                    start_time.isoformat(),
                    end_time.isoformat(),
                    conflicting_session_id=clash.id,
                )

            session = self.session_repository.create_if_free(
                coach_id=coach_id,
                title=request.title.strip(),
                description=request.description,
                start_time=start_time,
                end_time=end_time,
                max_students=request.max_students,
                price=request.price,
                visibility=request.visibility,
            )
            if session is None:
                # Another worker committed an overlapping session after the check
                clash = self.session_repository.find_overlapping_session(
                    coach_id, start_time, end_time
                )
                raise SessionOverlapException(
                    start_time.isoformat(),
                    end_time.isoformat(),
                    conflicting_session_id=clash.id if clash is not None else None,
                )

            if whitelist_ids:
                self.session_repository.add_whitelist_entries(session.id, whitelist_ids)

        self.session_repository.refresh(session)
        return session

    @staticmethod
    def _validate_template(request: CreateSessionRequest) -> None:
        if not request.title or not request.title.strip():
            raise ValidationException("Title is required", details={"field": "title"})
        if request.end_time <= request.start_time:
            raise ValidationException(
                ERROR_INVALID_TIME_RANGE,
                details={
                    "start_time": request.start_time.isoformat(),
                    "end_time": request.end_time.isoformat(),
                },
            )
        if request.max_students < 1:
            raise ValidationException(
                "max_students must be at least 1", details={"field": "max_students"}
            )
        if request.price < 0:
            raise ValidationException("Price cannot be negative", details={"field": "price"})

    def _resolve_whitelist(self, student_ids: Sequence[str]) -> List[str]:
        """Keep only ids of existing students, in request order."""
        requested = list(dict.fromkeys(student_ids))
        known = {user.id for user in self.user_repository.get_students_by_ids(requested)}
        unknown = [student_id for student_id in requested if student_id not in known]
        if unknown:
            self.logger.warning(
                "Ignoring unknown whitelist student ids",
                extra={"unknown_student_ids": unknown},
            )
        return [student_id for student_id in requested if student_id in known]

    def _announce(
        self,
        session: CoachingSession,
        visibility: SessionVisibility,
        whitelist_ids: Sequence[str],
    ) -> None:
        """Emit the publish event for the students who can see the new session."""
        if visibility == SessionVisibility.WHITELIST:
            recipients = list(whitelist_ids)
        else:
            recipients = [user.id for user in self.user_repository.get_subscribers(session.coach_id)]

        self.log_operation(
            "session.published",
            session_id=session.id,
            coach_id=session.coach_id,
            visibility=visibility.value,
            recipient_ids=recipients,
            recipient_count=len(recipients),
        )

    @BaseService.measure_operation("delete_session")
    def delete_session(self, session_id: str, coach_id: str) -> None:
        """
        Delete a session owned by the coach.

        Raises:
            NotFoundException: Session missing or owned by another coach
            BusinessRuleException: Session has confirmed bookings
        """
        with coach_schedule_lock(coach_id), session_capacity_lock(session_id):
            with self.transaction():
                session = self.session_repository.get_owned_session(
                    session_id, coach_id, for_update=True
                )
                if session is None:
                    raise NotFoundException(
                        ERROR_SESSION_NOT_FOUND, details={"session_id": session_id}
                    )

                confirmed = self.booking_repository.count_for_session(
                    session_id, [BookingStatus.CONFIRMED.value]
                )
                removed = (
                    None
                    if confirmed > 0
                    else self.session_repository.delete_if_unconfirmed(session)
                )
                if removed is None:
                    raise BusinessRuleException(
                        ERROR_CONFIRMED_BOOKINGS,
                        code="SESSION_HAS_CONFIRMED_BOOKINGS",
                        details={"session_id": session_id, "confirmed_count": max(confirmed, 1)},
                    )

        self.log_operation(
            "session.deleted",
            session_id=session_id,
            coach_id=coach_id,
            removed_bookings=removed,
        )

    @BaseService.measure_operation("list_coach_sessions")
    def list_coach_sessions(self, coach_id: str) -> List[SessionRow]:
        """All sessions of the coach ordered by start time, with capacity counts."""
        return self.session_repository.list_sessions_with_counts(coach_id=coach_id)
