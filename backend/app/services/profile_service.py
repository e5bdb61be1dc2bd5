# backend/app/services/profile_service.py
"""
Profile Service for the coaching platform.

Reads and edits the caller's own profile and serves the coach and
student directories.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import ERROR_NO_PROFILE_CHANGES, ERROR_USER_NOT_FOUND
from ..core.enums import RoleName
from ..core.exceptions import NotFoundException, ValidationException
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.user_repository import UserRepository
from ..schemas.profile import ProfileUpdateRequest
from .base import BaseService

logger = logging.getLogger(__name__)

# Fields only coaches may set
COACH_ONLY_FIELDS = ("description", "expertise")


class ProfileService(BaseService):
    """Own-profile edits and user directories."""

    def __init__(self, db: Session, user_repository: Optional[UserRepository] = None):
        super().__init__(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("get_profile")
    def get_profile(self, user_id: str) -> User:
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFoundException(ERROR_USER_NOT_FOUND, details={"user_id": user_id})
        return user

    @BaseService.measure_operation("update_profile")
    def update_profile(self, user_id: str, request: ProfileUpdateRequest) -> User:
        """
        Apply the fields present in ``request`` to the user's profile.

        Students may only change their name; description and expertise sent
        by a student are ignored.

        Raises:
            NotFoundException: User does not exist
            ValidationException: Nothing applicable to change
        """
        user = self.get_profile(user_id)

        changes: Dict[str, Any] = {}
        if request.name is not None:
            changes["name"] = request.name
        if user.is_coach:
            for field_name in COACH_ONLY_FIELDS:
                if field_name in request.model_fields_set:
                    changes[field_name] = getattr(request, field_name)

        if not changes:
            raise ValidationException(ERROR_NO_PROFILE_CHANGES, code="NO_CHANGES")

        with self.transaction():
            for field_name, value in changes.items():
                setattr(user, field_name, value)
            self.db.flush()

        self.user_repository.refresh(user)
        self.log_operation("profile.updated", user_id=user_id, fields=sorted(changes))
        return user

    @BaseService.measure_operation("list_students")
    def list_students(self) -> List[User]:
        """Every student account, ordered by name."""
        return self.user_repository.list_by_role(RoleName.STUDENT)

    @BaseService.measure_operation("list_coaches")
    def list_coaches(self) -> List[User]:
        """Every coach account, ordered by name."""
        return self.user_repository.list_by_role(RoleName.COACH)
