# backend/app/routes/v1/credits.py
"""
Coach credit routes - API v1

Endpoints:
    GET /                  → Own balance after due deductions (coach)
    POST /initialize-all   → Open accounts for every coach without one (coach)
"""

import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_coach_credit_service, get_current_coach
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.user import User
from ...schemas.credit import CreditBalanceResponse, CreditsInitializedResponse
from ...services.credit_service import CoachCreditService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["credits-v1"])


@router.get("", response_model=CreditBalanceResponse)
def get_credits(
    current_user: User = Depends(get_current_coach),
    service: CoachCreditService = Depends(get_coach_credit_service),
) -> CreditBalanceResponse:
    try:
        credit = service.get_balance(current_user.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return CreditBalanceResponse.model_validate(credit)


@router.post("/initialize-all", response_model=CreditsInitializedResponse)
def initialize_all_credits(
    current_user: User = Depends(get_current_coach),
    service: CoachCreditService = Depends(get_coach_credit_service),
) -> CreditsInitializedResponse:
    count = service.initialize_all_coaches()
    return CreditsInitializedResponse(
        message=f"Initialized credits for {count} coaches",
        initialized_count=count,
    )
