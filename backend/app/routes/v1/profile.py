# backend/app/routes/v1/profile.py
"""
Profile routes - API v1

Endpoints:
    GET /profile  → Caller's own profile (authenticated)
    PUT /profile  → Update name; coaches also description and expertise
"""

import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_user, get_profile_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.profile import ProfileResponse, ProfileUpdatedResponse, ProfileUpdateRequest
from ...services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profile-v1"])


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    return ProfileResponse.model_validate(current_user)


@router.put("/profile", response_model=ProfileUpdatedResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileUpdatedResponse:
    """Partial update; fields a student may not change are ignored."""
    try:
        user = service.update_profile(current_user.id, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ProfileUpdatedResponse(
        message="Profile updated",
        user=ProfileResponse.model_validate(user),
    )
