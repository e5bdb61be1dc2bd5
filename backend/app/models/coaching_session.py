# backend/app/models/coaching_session.py
"""
Coaching session model.

A session is a coach-owned time window that students can request to
join. Time windows are half-open: a session ending at 11:00 does not
overlap one starting at 11:00.

Timestamps are stored as naive UTC datetimes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
import logging
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Coarse lifecycle flag, independent of capacity."""

    AVAILABLE = "available"
    BOOKED = "booked"
    CANCELLED = "cancelled"


class SessionVisibility(str, Enum):
    """Who can discover a session."""

    PUBLIC = "public"
    SUBSCRIBERS_ONLY = "subscribers_only"
    WHITELIST = "whitelist"


# Sessions in these statuses block overlapping sessions of the same coach
BLOCKING_SESSION_STATUSES = (SessionStatus.AVAILABLE.value, SessionStatus.BOOKED.value)


class CoachingSession(Base):
    """A bookable time window published by a coach."""

    __tablename__ = "sessions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    coach_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    max_students = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    status = Column(String(20), nullable=False, default=SessionStatus.AVAILABLE.value, index=True)
    visibility = Column(String(20), nullable=False, default=SessionVisibility.PUBLIC.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    coach = relationship("User", back_populates="sessions")
    bookings = relationship(
        "Booking",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    whitelist_entries = relationship(
        "SessionWhitelistEntry",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_sessions_time_order"),
        CheckConstraint("max_students >= 1", name="ck_sessions_capacity_positive"),
        CheckConstraint("price >= 0", name="ck_sessions_price_non_negative"),
        CheckConstraint(
            "status IN ('available', 'booked', 'cancelled')", name="ck_sessions_status"
        ),
        CheckConstraint(
            "visibility IN ('public', 'subscribers_only', 'whitelist')",
            name="ck_sessions_visibility",
        ),
        Index("ix_sessions_coach_window", "coach_id", "start_time", "end_time"),
    )

    def __init__(self, **kwargs: Any) -> None:
        for key in ("status", "visibility"):
            value = kwargs.get(key)
            if isinstance(value, Enum):
                kwargs[key] = value.value
        super().__init__(**kwargs)

    def overlaps(self, start_time: datetime, end_time: datetime) -> bool:
        """Half-open interval intersection with [start_time, end_time)."""
        return self.start_time < end_time and self.end_time > start_time

    def __repr__(self) -> str:
        return (
            f"<CoachingSession {self.id}: coach={self.coach_id}, "
            f"{self.start_time}-{self.end_time}, status={self.status}>"
        )


class SessionWhitelistEntry(Base):
    """Grants one student visibility of a whitelist-only session."""

    __tablename__ = "session_visibility_whitelist"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    session_id = Column(
        String(26), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("CoachingSession", back_populates="whitelist_entries")

    __table_args__ = (
        UniqueConstraint("session_id", "student_id", name="uq_session_whitelist_student"),
    )
