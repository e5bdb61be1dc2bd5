# backend/app/services/credit_service.py
"""
Coach Credit Service for the coaching platform.

Every coach has a credit account that starts at
``settings.coach_initial_credits``. For each calendar day since the
last deduction, ``settings.coach_daily_credit_deduction`` is taken off,
never going below zero. Deductions run lazily whenever a coach reads
their balance; there is no background scheduler.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.booking_lock import coach_credit_lock
from ..core.config import settings
from ..core.constants import ERROR_COACH_NOT_FOUND
from ..core.exceptions import NotFoundException, RepositoryException
from ..core.timezone_utils import utc_today
from ..models.credit import CoachCredit
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.credit_repository import CreditRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import UserRepository
from .base import BaseService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def days_to_deduct(last_deduction_date: date, today: date) -> int:
    """Whole days elapsed since the last deduction; never negative."""
    return max(0, (today - last_deduction_date).days)


def deducted_balance(balance: Decimal, days: int, per_day: Decimal) -> Decimal:
    """Balance after ``days`` daily deductions, floored at zero."""
    remaining = Decimal(balance) - Decimal(per_day) * days
    return max(Decimal("0"), remaining).quantize(CENT, rounding=ROUND_HALF_UP)


class CoachCreditService(BaseService):
    """Coach credit accounts and their daily deductions."""

    def __init__(
        self,
        db: Session,
        credit_repository: Optional[CreditRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        super().__init__(db)
        self.credit_repository = (
            credit_repository or RepositoryFactory.create_credit_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("get_balance")
    def get_balance(self, coach_id: str, today: Optional[date] = None) -> CoachCredit:
        """
        Return the coach's account after processing due deductions.

        The account is created on first read.

        Raises:
            NotFoundException: Coach does not exist
        """
        today = today or utc_today()
        if self.user_repository.get_coach(coach_id) is None:
            raise NotFoundException(ERROR_COACH_NOT_FOUND, details={"coach_id": coach_id})

        with coach_credit_lock(coach_id):
            self._ensure_account(coach_id, today)
        self.apply_daily_deductions(today)

        credit = self.credit_repository.get_for_coach(coach_id)
        if credit is None:
            raise NotFoundException("Credit account not found", details={"coach_id": coach_id})
        self.credit_repository.refresh(credit)
        return credit

    @BaseService.measure_operation("apply_daily_deductions")
    def apply_daily_deductions(self, today: Optional[date] = None) -> int:
        """
        Deduct the daily amount for every elapsed day on all due accounts.

        Returns the number of accounts updated. An account already advanced
        by a concurrent run is left alone.
        """
        today = today or utc_today()
        per_day = settings.coach_daily_credit_deduction
        updated = 0

        with self.transaction():
            for credit in self.credit_repository.list_due(today):
                days = days_to_deduct(credit.last_deduction_date, today)
                if days == 0:
                    continue
                new_balance = deducted_balance(credit.balance, days, per_day)
                if self.credit_repository.apply_deduction(
                    credit.id, credit.last_deduction_date, new_balance, today
                ):
                    updated += 1

        prometheus_metrics.record_credit_deductions(updated)
        if updated:
            self.log_operation(
                "credits.deducted", accounts=updated, deduction_date=today.isoformat()
            )
        return updated

    @BaseService.measure_operation("initialize_all_coaches")
    def initialize_all_coaches(self, today: Optional[date] = None) -> int:
        """Open an account for every coach that has none. Returns how many were opened."""
        today = today or utc_today()
        opened = 0
        for coach in self.credit_repository.list_coaches_without_account():
            with coach_credit_lock(coach.id):
                if self._ensure_account(coach.id, today):
                    opened += 1

        self.log_operation("credits.initialized", accounts=opened)
        return opened

    def _ensure_account(self, coach_id: str, today: date) -> bool:
        """Create the coach's account if missing. Returns True when it was created here."""
        if self.credit_repository.get_for_coach(coach_id) is not None:
            return False
        try:
            with self.transaction():
                self.credit_repository.create(
                    coach_id=coach_id,
                    balance=settings.coach_initial_credits,
                    last_deduction_date=today,
                )
        except RepositoryException as exc:
            # Unique coach_id: another worker opened the account first
            if isinstance(exc.__cause__, IntegrityError):
                return False
            raise
        return True
