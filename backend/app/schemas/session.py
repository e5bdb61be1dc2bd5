# backend/app/schemas/session.py
"""
Coaching session schemas.

CreateSessionRequest is the validated input of the scheduler: the HTTP
layer builds it once from the request body, so the scheduler only ever
sees typed values. Window ordering (end after start) is a scheduler
rule and is enforced there.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import AvailabilityStatus, RepeatInterval, ScheduleOutcome
from ..core.timezone_utils import to_naive_utc
from ..models.coaching_session import SessionStatus, SessionVisibility
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel


class CreateSessionRequest(StrictRequestModel):
    """Template and recurrence rule for creating one or more sessions."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_time: datetime
    end_time: datetime
    max_students: int = Field(1, ge=1)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    visibility: SessionVisibility = SessionVisibility.PUBLIC
    whitelist_student_ids: List[str] = Field(default_factory=list)
    repeat_interval: RepeatInterval = RepeatInterval.NONE
    # Clamped by the scheduler; any integer is accepted here
    occurrences: int = 1

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_to_utc(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class SessionResponse(StandardizedModel):
    """A persisted coaching session."""

    id: str
    coach_id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    max_students: int
    price: Money
    status: SessionStatus
    visibility: SessionVisibility
    created_at: Optional[datetime] = None


class SessionWithCountsResponse(SessionResponse):
    """Session plus coach name and capacity counts for calendars and listings."""

    coach_name: str
    booked_count: int = Field(..., description="Confirmed bookings")
    held_count: int = Field(..., description="Pending plus confirmed bookings")
    availability_status: AvailabilityStatus


class ConflictDescriptor(StandardizedModel):
    """An occurrence skipped because it overlaps an existing session."""

    index: int
    start_time: datetime
    end_time: datetime
    conflicting_session_id: Optional[str] = None


class SessionScheduleResponse(StandardizedModel):
    """Structured summary of a (possibly recurring) creation request."""

    message: str
    outcome: ScheduleOutcome
    requested_occurrences: int
    created_count: int
    skipped_count: int
    created: List[SessionResponse]
    skipped: List[ConflictDescriptor]
