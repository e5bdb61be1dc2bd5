# backend/app/repositories/user_repository.py
"""User lookups used by the scheduling, subscription and profile services."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import RepositoryException
from ..models.subscription import CoachSubscription
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user data access."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_coach(self, coach_id: str) -> Optional[User]:
        return self.find_one_by(id=coach_id, role=RoleName.COACH.value)

    def get_students_by_ids(self, student_ids: Iterable[str]) -> List[User]:
        """Return the subset of ``student_ids`` that are existing student accounts."""
        ids = list(dict.fromkeys(student_ids))
        if not ids:
            return []
        return self._execute_query(
            self.db.query(User).filter(User.id.in_(ids), User.role == RoleName.STUDENT.value)
        )

    def get_subscribers(self, coach_id: str) -> List[User]:
        """Students following ``coach_id``."""
        return self._execute_query(
            self.db.query(User)
            .join(CoachSubscription, CoachSubscription.student_id == User.id)
            .filter(CoachSubscription.coach_id == coach_id)
        )

    def lock_coach(self, coach_id: str) -> Optional[User]:
        """Load the coach row FOR UPDATE so schedule writes of one coach serialize."""
        try:
            return (
                self.db.query(User)
                .filter(User.id == coach_id, User.role == RoleName.COACH.value)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking coach {coach_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock coach: {str(e)}") from e

    def list_by_role(self, role: RoleName) -> List[User]:
        """All users holding ``role``, ordered by name."""
        return self._execute_query(
            self.db.query(User).filter(User.role == role.value).order_by(User.name, User.id)
        )
