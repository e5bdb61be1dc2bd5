"""
Database models for the coaching platform.

This module exports all SQLAlchemy models used in the application:
- User: coaches and students
- CoachingSession / SessionWhitelistEntry: published time windows
- Booking: student requests against sessions
- CoachSubscription: students following coaches
- CoachCredit: per-coach credit balance
"""

from .booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from .coaching_session import (
    BLOCKING_SESSION_STATUSES,
    CoachingSession,
    SessionStatus,
    SessionVisibility,
    SessionWhitelistEntry,
)
from .credit import CoachCredit
from .subscription import CoachSubscription
from .user import User

__all__ = [
    "ACTIVE_BOOKING_STATUSES",
    "BLOCKING_SESSION_STATUSES",
    "Booking",
    "BookingStatus",
    "CoachCredit",
    "CoachSubscription",
    "CoachingSession",
    "SessionStatus",
    "SessionVisibility",
    "SessionWhitelistEntry",
    "User",
]
