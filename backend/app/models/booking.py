# backend/app/models/booking.py
"""
Booking model for the coaching platform.

A booking is a student's claim on a session. Bookings start as pending
requests and are confirmed or cancelled by the coach, or cancelled by the
student. They are never deleted on their own; only deleting the session
removes them.

State machine:
    pending   --approve--> confirmed
    pending   --reject-->  cancelled
    pending   --cancel-->  cancelled
    confirmed --cancel-->  cancelled
"""

from enum import Enum
import logging
from typing import Any

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Awaiting coach decision, holds a seat provisionally
    CONFIRMED = "confirmed"  # Approved by coach
    CANCELLED = "cancelled"  # Rejected by coach or cancelled by student (terminal)


# Statuses that count against a session's capacity
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    """A student's request for a seat in a coaching session."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    session_id = Column(
        String(26), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    session = relationship("CoachingSession", back_populates="bookings")
    student = relationship("User", back_populates="bookings")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="ck_bookings_status",
        ),
        # At most one active request per (session, student)
        Index(
            "uq_bookings_active_student_session",
            "session_id",
            "student_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'confirmed')"),
            postgresql_where=text("status IN ('pending', 'confirmed')"),
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        """Initialize as a pending request by default."""
        status = kwargs.get("status")
        if isinstance(status, BookingStatus):
            kwargs["status"] = status.value
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value
        logger.info(f"Creating booking for student {self.student_id} on session {self.session_id}")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: session={self.session_id}, "
            f"student={self.student_id}, status={self.status}>"
        )
