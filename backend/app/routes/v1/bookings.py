# backend/app/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    POST /                     → Request a seat in a session (student)
    GET /student               → Student's own bookings (student)
    GET /pending               → Pending requests on the coach's sessions (coach)
    PUT /{booking_id}/approve  → Confirm a pending request (coach)
    PUT /{booking_id}/reject   → Decline a pending request (coach)
    PUT /{booking_id}/cancel   → Cancel own booking (student)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_booking_service, get_current_coach, get_current_student
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.booking import (
    BookingActionResponse,
    BookingCreate,
    BookingResponse,
    PendingBookingResponse,
    StudentBookingResponse,
)
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


# Static routes first (before dynamic routes with path parameters)


@router.post("", response_model=BookingActionResponse, status_code=status.HTTP_201_CREATED)
def request_booking(
    payload: BookingCreate,
    current_user: User = Depends(get_current_student),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse:
    """Create a pending booking awaiting the coach's decision."""
    try:
        booking = booking_service.request_booking(payload.session_id, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return BookingActionResponse(
        message="Booking request sent",
        booking=BookingResponse.model_validate(booking),
    )


@router.get("/student", response_model=List[StudentBookingResponse])
def list_student_bookings(
    current_user: User = Depends(get_current_student),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[StudentBookingResponse]:
    rows = booking_service.list_for_student(current_user.id)
    return [
        StudentBookingResponse(
            **BookingResponse.model_validate(booking).model_dump(),
            title=session.title,
            description=session.description,
            start_time=session.start_time,
            end_time=session.end_time,
            price=session.price,
            coach_name=coach.name,
            coach_email=coach.email,
        )
        for booking, session, coach in rows
    ]


@router.get("/pending", response_model=List[PendingBookingResponse])
def list_pending_bookings(
    current_user: User = Depends(get_current_coach),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[PendingBookingResponse]:
    rows = booking_service.list_pending_for_coach(current_user.id)
    return [
        PendingBookingResponse(
            **BookingResponse.model_validate(booking).model_dump(),
            session_title=session.title,
            start_time=session.start_time,
            end_time=session.end_time,
            student_name=student.name,
            student_email=student.email,
        )
        for booking, session, student in rows
    ]


# Dynamic routes


@router.put("/{booking_id}/approve", response_model=BookingActionResponse)
def approve_booking(
    booking_id: str,
    current_user: User = Depends(get_current_coach),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse:
    """Confirm a pending request if a seat is still free."""
    try:
        booking = booking_service.approve_booking(booking_id, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return BookingActionResponse(
        message="Booking approved", booking=BookingResponse.model_validate(booking)
    )


@router.put("/{booking_id}/reject", response_model=BookingActionResponse)
def reject_booking(
    booking_id: str,
    current_user: User = Depends(get_current_coach),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse:
    try:
        booking = booking_service.reject_booking(booking_id, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return BookingActionResponse(
        message="Booking rejected", booking=BookingResponse.model_validate(booking)
    )


@router.put("/{booking_id}/cancel", response_model=BookingActionResponse)
def cancel_booking(
    booking_id: str,
    current_user: User = Depends(get_current_student),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse:
    """Cancel a pending or confirmed booking; repeating the call is harmless."""
    try:
        booking = booking_service.cancel_booking(booking_id, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return BookingActionResponse(
        message="Booking cancelled", booking=BookingResponse.model_validate(booking)
    )
