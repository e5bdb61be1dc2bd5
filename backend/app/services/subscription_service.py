# backend/app/services/subscription_service.py
"""
Subscription Service for the coaching platform.

Students follow coaches to see their subscribers-only sessions and to
be told when new sessions are published.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import ERROR_COACH_NOT_FOUND
from ..core.exceptions import (
    ConflictException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..models.subscription import CoachSubscription
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.subscription_repository import SubscriptionRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class SubscriptionService(BaseService):
    """Manage student → coach subscriptions."""

    def __init__(
        self,
        db: Session,
        subscription_repository: Optional[SubscriptionRepository] = None,
        user_repository: Optional[UserRepository] = None,
    ):
        super().__init__(db)
        self.subscription_repository = (
            subscription_repository or RepositoryFactory.create_subscription_repository(db)
        )
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("subscribe")
    def subscribe(self, student_id: str, coach_id: str) -> CoachSubscription:
        """
        Subscribe a student to a coach.

        Raises:
            ValidationException: Subscribing to yourself
            NotFoundException: Coach does not exist
            ConflictException: Already subscribed
        """
        if student_id == coach_id:
            raise ValidationException("Cannot subscribe to yourself")

        if self.user_repository.get_coach(coach_id) is None:
            raise NotFoundException(ERROR_COACH_NOT_FOUND, details={"coach_id": coach_id})

        if self.subscription_repository.get_pair(student_id, coach_id) is not None:
            raise self._already_subscribed(coach_id)

        try:
            with self.transaction():
                subscription = self.subscription_repository.create(
                    student_id=student_id, coach_id=coach_id
                )
        except RepositoryException as exc:
            # Unique (student_id, coach_id) lost a race with a concurrent subscribe
            if isinstance(exc.__cause__, IntegrityError):
                raise self._already_subscribed(coach_id) from exc
            raise

        self.subscription_repository.refresh(subscription)
        self.log_operation("subscription.created", student_id=student_id, coach_id=coach_id)
        return subscription

    @BaseService.measure_operation("unsubscribe")
    def unsubscribe(self, student_id: str, coach_id: str) -> None:
        """Remove a subscription, raising NotFoundException when there is none."""
        with self.transaction():
            removed = self.subscription_repository.delete_pair(student_id, coach_id)
            if not removed:
                raise NotFoundException(
                    "Subscription not found", details={"coach_id": coach_id}
                )

        self.log_operation("subscription.deleted", student_id=student_id, coach_id=coach_id)

    @BaseService.measure_operation("list_subscriptions")
    def list_subscriptions(self, student_id: str) -> List[Tuple[CoachSubscription, User]]:
        return self.subscription_repository.list_with_coaches(student_id)

    @BaseService.measure_operation("is_subscribed")
    def is_subscribed(self, student_id: str, coach_id: str) -> bool:
        return self.subscription_repository.get_pair(student_id, coach_id) is not None

    @staticmethod
    def _already_subscribed(coach_id: str) -> ConflictException:
        return ConflictException(
            "Already subscribed to this coach",
            code="ALREADY_SUBSCRIBED",
            details={"coach_id": coach_id},
        )
