# backend/app/schemas/__init__.py
"""
Pydantic schemas for the coaching platform.

Request models forbid unknown fields; response models read straight
from ORM objects.
"""

from .base import MessageResponse, Money, StandardizedModel
from .booking import (
    BookingActionResponse,
    BookingCreate,
    BookingResponse,
    PendingBookingResponse,
    StudentBookingResponse,
)
from .credit import CreditBalanceResponse, CreditsInitializedResponse
from .profile import (
    CoachSummaryResponse,
    ProfileResponse,
    ProfileUpdatedResponse,
    ProfileUpdateRequest,
    StudentSummaryResponse,
)
from .session import (
    ConflictDescriptor,
    CreateSessionRequest,
    SessionResponse,
    SessionScheduleResponse,
    SessionWithCountsResponse,
)
from .subscription import (
    SubscriptionCreatedResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
    SubscriptionWithCoachResponse,
)

__all__ = [
    "BookingActionResponse",
    "BookingCreate",
    "BookingResponse",
    "CoachSummaryResponse",
    "ConflictDescriptor",
    "CreateSessionRequest",
    "CreditBalanceResponse",
    "CreditsInitializedResponse",
    "MessageResponse",
    "Money",
    "PendingBookingResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "ProfileUpdatedResponse",
    "SessionResponse",
    "SessionScheduleResponse",
    "SessionWithCountsResponse",
    "StandardizedModel",
    "StudentBookingResponse",
    "StudentSummaryResponse",
    "SubscriptionCreatedResponse",
    "SubscriptionResponse",
    "SubscriptionStatusResponse",
    "SubscriptionWithCoachResponse",
]
