# backend/app/repositories/subscription_repository.py
"""Coach subscription data access."""

import logging
from typing import List, Optional, Tuple, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.subscription import CoachSubscription
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[CoachSubscription]):
    """Repository for student → coach subscriptions."""

    def __init__(self, db: Session):
        super().__init__(db, CoachSubscription)

    def get_pair(self, student_id: str, coach_id: str) -> Optional[CoachSubscription]:
        return self.find_one_by(student_id=student_id, coach_id=coach_id)

    def delete_pair(self, student_id: str, coach_id: str) -> bool:
        """Delete the subscription. Returns False when none existed."""
        try:
            deleted = (
                self.db.query(CoachSubscription)
                .filter(
                    CoachSubscription.student_id == student_id,
                    CoachSubscription.coach_id == coach_id,
                )
                .delete(synchronize_session=False)
            )
            self.db.flush()
            return bool(deleted)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting subscription: {str(e)}")
            raise RepositoryException(f"Failed to delete subscription: {str(e)}")

    def list_with_coaches(self, student_id: str) -> List[Tuple[CoachSubscription, User]]:
        """The student's subscriptions joined with the coach, newest first."""
        return cast(
            List[Tuple[CoachSubscription, User]],
            self._execute_query(
                self.db.query(CoachSubscription, User)
                .join(User, User.id == CoachSubscription.coach_id)
                .filter(CoachSubscription.student_id == student_id)
                .order_by(CoachSubscription.created_at.desc(), CoachSubscription.id.desc())
            ),
        )
