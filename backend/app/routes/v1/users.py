# backend/app/routes/v1/users.py
"""
User directory routes - API v1

Endpoints:
    GET /students  → All students, for whitelist pickers (coach)
    GET /coaches   → All coaches (public)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from ...api.dependencies import get_current_coach, get_profile_service
from ...models.user import User
from ...schemas.profile import CoachSummaryResponse, StudentSummaryResponse
from ...services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users-v1"])


@router.get("/students", response_model=List[StudentSummaryResponse])
def list_students(
    current_user: User = Depends(get_current_coach),
    service: ProfileService = Depends(get_profile_service),
) -> List[StudentSummaryResponse]:
    return [StudentSummaryResponse.model_validate(user) for user in service.list_students()]


@router.get("/coaches", response_model=List[CoachSummaryResponse])
def list_coaches(
    service: ProfileService = Depends(get_profile_service),
) -> List[CoachSummaryResponse]:
    return [CoachSummaryResponse.model_validate(user) for user in service.list_coaches()]
