# backend/app/schemas/booking.py
"""Booking request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..models.booking import BookingStatus
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel


class BookingCreate(StrictRequestModel):
    """A student's request for a seat in a session."""

    session_id: str = Field(..., min_length=1, description="Session to request")


class BookingResponse(StandardizedModel):
    id: str
    session_id: str
    student_id: str
    status: BookingStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingActionResponse(StandardizedModel):
    """Result of a booking transition."""

    message: str
    booking: BookingResponse


class PendingBookingResponse(BookingResponse):
    """Pending request as shown to the coach."""

    session_title: str
    start_time: datetime
    end_time: datetime
    student_name: str
    student_email: str


class StudentBookingResponse(BookingResponse):
    """A booking as listed for the student who made it."""

    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    price: Money
    coach_name: str
    coach_email: str
