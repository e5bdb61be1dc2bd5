# backend/app/routes/v1/sessions.py
"""
Session routes - API v1

Versioned session endpoints under /api/v1/sessions.
Scheduling is delegated to SessionScheduler, discovery to SessionCatalogService.

Endpoints:
    POST /                → Create one session or a recurring series (coach)
    GET /coach            → Coach's own sessions with counts (coach)
    GET /available        → Upcoming visible sessions, date and expertise filters (authenticated)
    GET /calendar         → Visible sessions, optional auth
    DELETE /{session_id}  → Delete a session without confirmed bookings (coach)
"""

from datetime import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies import (
    get_current_coach,
    get_current_user,
    get_current_user_optional,
    get_session_catalog_service,
    get_session_scheduler,
)
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.base import MessageResponse
from ...schemas.session import (
    CreateSessionRequest,
    SessionResponse,
    SessionScheduleResponse,
    SessionWithCountsResponse,
)
from ...services.session_catalog_service import SessionCatalogService, SessionListing
from ...services.session_scheduler import SessionScheduler

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["sessions-v1"])


def _listing_response(listing: SessionListing) -> SessionWithCountsResponse:
    base = SessionResponse.model_validate(listing.session).model_dump()
    return SessionWithCountsResponse(
        **base,
        coach_name=listing.coach_name,
        booked_count=listing.booked_count,
        held_count=listing.held_count,
        availability_status=listing.availability_status,
    )


@router.post(
    "",
    response_model=SessionScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": SessionScheduleResponse}},
)
def create_sessions(
    payload: CreateSessionRequest,
    response: Response,
    current_user: User = Depends(get_current_coach),
    scheduler: SessionScheduler = Depends(get_session_scheduler),
) -> SessionScheduleResponse:
    """
    Create a session, or a daily/weekly series of sessions.

    Occurrences overlapping the coach's existing sessions are skipped and
    reported. Responds 201 when at least one session was created and 409
    when every occurrence conflicted; both carry the same summary body.
    """
    try:
        result = scheduler.create_sessions(current_user.id, payload)
    except DomainException as exc:
        handle_domain_exception(exc)

    if not result.created:
        response.status_code = status.HTTP_409_CONFLICT

    return SessionScheduleResponse(
        message=result.message,
        outcome=result.outcome,
        requested_occurrences=result.requested_occurrences,
        created_count=result.created_count,
        skipped_count=result.skipped_count,
        created=[SessionResponse.model_validate(session) for session in result.created],
        skipped=result.skipped,
    )


@router.get("/coach", response_model=List[SessionWithCountsResponse])
def list_coach_sessions(
    current_user: User = Depends(get_current_coach),
    scheduler: SessionScheduler = Depends(get_session_scheduler),
) -> List[SessionWithCountsResponse]:
    """All of the coach's sessions ordered by start time."""
    rows = scheduler.list_coach_sessions(current_user.id)
    return [_listing_response(listing) for listing in SessionCatalogService.to_listings(rows)]


@router.get("/available", response_model=List[SessionWithCountsResponse])
def list_available_sessions(
    coach_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    expertise: Optional[str] = Query(None, max_length=50),
    current_user: User = Depends(get_current_user),
    catalog: SessionCatalogService = Depends(get_session_catalog_service),
) -> List[SessionWithCountsResponse]:
    """Upcoming open sessions the caller can see, filtered by window and coach expertise."""
    try:
        listings = catalog.list_visible_sessions(
            current_user,
            coach_id=coach_id,
            start_date=start_date,
            end_date=end_date,
            expertise=expertise,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return [_listing_response(listing) for listing in listings]


@router.get("/calendar", response_model=List[SessionWithCountsResponse])
def get_calendar(
    coach_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: Optional[User] = Depends(get_current_user_optional),
    catalog: SessionCatalogService = Depends(get_session_catalog_service),
) -> List[SessionWithCountsResponse]:
    """
    Calendar view of open sessions.

    A coach without an explicit coach_id sees their own calendar.
    """
    if coach_id is None and current_user is not None and current_user.is_coach:
        coach_id = current_user.id

    try:
        listings = catalog.list_visible_sessions(
            current_user,
            coach_id=coach_id,
            start_date=start_date,
            end_date=end_date,
            upcoming_only=False,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return [_listing_response(listing) for listing in listings]


@router.delete("/{session_id}", response_model=MessageResponse)
def delete_session(
    session_id: str,
    current_user: User = Depends(get_current_coach),
    scheduler: SessionScheduler = Depends(get_session_scheduler),
) -> MessageResponse:
    """Delete a session and its pending or cancelled bookings."""
    try:
        scheduler.delete_session(session_id, current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Session deleted successfully")
