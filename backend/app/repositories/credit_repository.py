# backend/app/repositories/credit_repository.py
"""
Credit Repository for the coaching platform.

Coach credit accounts. Deductions are conditional UPDATEs keyed on the
last deduction date read by the caller, so two workers processing the
same account cannot both deduct for the same days.
"""

from datetime import date
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..models.credit import CoachCredit
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CreditRepository(BaseRepository[CoachCredit]):
    """Repository for coach credit accounts."""

    def __init__(self, db: Session):
        super().__init__(db, CoachCredit)

    def get_for_coach(self, coach_id: str) -> Optional[CoachCredit]:
        return self.find_one_by(coach_id=coach_id)

    def list_due(self, today: date) -> List[CoachCredit]:
        """Accounts whose last deduction happened before ``today``."""
        return self._execute_query(
            self.db.query(CoachCredit)
            .filter(CoachCredit.last_deduction_date < today)
            .order_by(CoachCredit.coach_id)
        )

    def list_coaches_without_account(self) -> List[User]:
        """Coach users that have no credit account yet."""
        return self._execute_query(
            self.db.query(User)
            .outerjoin(CoachCredit, CoachCredit.coach_id == User.id)
            .filter(User.role == RoleName.COACH.value, CoachCredit.id.is_(None))
            .order_by(User.name, User.id)
        )

    def apply_deduction(
        self, credit_id: str, seen_date: date, new_balance: Decimal, today: date
    ) -> bool:
        """
        Store ``new_balance`` only if the account was last deducted on ``seen_date``.

        Returns True when the row was updated.
        """
        stmt = (
            update(CoachCredit)
            .where(CoachCredit.id == credit_id, CoachCredit.last_deduction_date == seen_date)
            .values(balance=new_balance, last_deduction_date=today, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return self._execute_conditional(stmt)
