# backend/app/routes/v1/subscriptions.py
"""
Subscription routes - API v1

Versioned subscription endpoints under /api/v1/subscriptions.

Endpoints:
    GET /               → Coaches the student follows (student)
    POST /{coach_id}    → Follow a coach (student)
    DELETE /{coach_id}  → Unfollow a coach (student)
    GET /{coach_id}     → Whether the student follows the coach (student)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_current_student, get_subscription_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.base import MessageResponse
from ...schemas.subscription import (
    SubscriptionCreatedResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
    SubscriptionWithCoachResponse,
)
from ...services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions-v1"])


@router.get("", response_model=List[SubscriptionWithCoachResponse])
def list_subscriptions(
    current_user: User = Depends(get_current_student),
    service: SubscriptionService = Depends(get_subscription_service),
) -> List[SubscriptionWithCoachResponse]:
    return [
        SubscriptionWithCoachResponse(
            id=subscription.id,
            coach_id=coach.id,
            created_at=subscription.created_at,
            coach_name=coach.name,
            coach_email=coach.email,
            coach_description=coach.description,
            coach_expertise=coach.expertise or [],
        )
        for subscription, coach in service.list_subscriptions(current_user.id)
    ]


@router.post(
    "/{coach_id}",
    response_model=SubscriptionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def subscribe(
    coach_id: str,
    current_user: User = Depends(get_current_student),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionCreatedResponse:
    try:
        subscription = service.subscribe(current_user.id, coach_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return SubscriptionCreatedResponse(
        message="Subscribed successfully",
        subscription=SubscriptionResponse.model_validate(subscription),
    )


@router.delete("/{coach_id}", response_model=MessageResponse)
def unsubscribe(
    coach_id: str,
    current_user: User = Depends(get_current_student),
    service: SubscriptionService = Depends(get_subscription_service),
) -> MessageResponse:
    try:
        service.unsubscribe(current_user.id, coach_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return MessageResponse(message="Unsubscribed successfully")


@router.get("/{coach_id}", response_model=SubscriptionStatusResponse)
def get_subscription_status(
    coach_id: str,
    current_user: User = Depends(get_current_student),
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse(subscribed=service.is_subscribed(current_user.id, coach_id))
