# backend/app/core/enums.py
"""
Core enums for the coaching platform.

This module contains enumeration types used throughout the application
for type safety and consistency.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles a platform user can hold."""

    COACH = "coach"
    STUDENT = "student"


class RepeatInterval(str, Enum):
    """Recurrence rule for session creation."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"


class ScheduleOutcome(str, Enum):
    """Aggregate result of a recurring creation batch."""

    CREATED = "created"  # every occurrence persisted
    PARTIAL = "partial"  # some persisted, some skipped
    CONFLICT = "conflict"  # nothing persisted


class AvailabilityStatus(str, Enum):
    """Capacity-derived availability shown on calendars."""

    AVAILABLE = "available"
    PARTIALLY_BOOKED = "partially_booked"
    BOOKED = "booked"
