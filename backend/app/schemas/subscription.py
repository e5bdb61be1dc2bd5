# backend/app/schemas/subscription.py
"""Coach subscription schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import StandardizedModel


class SubscriptionResponse(StandardizedModel):
    id: str
    student_id: str
    coach_id: str
    created_at: Optional[datetime] = None


class SubscriptionCreatedResponse(StandardizedModel):
    message: str
    subscription: SubscriptionResponse


class SubscriptionWithCoachResponse(StandardizedModel):
    id: str
    coach_id: str
    created_at: Optional[datetime] = None
    coach_name: str
    coach_email: str
    coach_description: Optional[str] = None
    coach_expertise: List[str] = Field(default_factory=list)


class SubscriptionStatusResponse(StandardizedModel):
    subscribed: bool
