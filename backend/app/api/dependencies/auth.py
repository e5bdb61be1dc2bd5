# backend/app/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token identifies the user by id; the user row is loaded from
the request's database session. ``require_role`` turns a role mismatch
into a 403 before any service code runs.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import decode_access_token, oauth2_scheme, oauth2_scheme_optional
from ...core.enums import RoleName
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def _credentials_error(message: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _load_user(token: str, db: Session) -> User:
    try:
        payload = decode_access_token(token)
    except UnauthorizedException as e:
        raise _credentials_error(e.message)

    user = RepositoryFactory.create_user_repository(db).get_by_id(payload["sub"])
    if user is None:
        logger.warning("Token subject does not match a user", extra={"user_id": payload["sub"]})
        raise _credentials_error()
    return user


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """Resolve the authenticated user or fail with 401."""
    return _load_user(token, db)


def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme_optional), db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Resolve the user when a token is supplied.

    No token means an anonymous caller; a bad token is still a 401.
    """
    if not token:
        return None
    return _load_user(token, db)


def require_role(role: RoleName) -> Callable[..., User]:
    """Ensure the current user holds ``role``."""

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role.value:
            raise ForbiddenException(
                f"This action requires the {role.value} role",
                code="ROLE_REQUIRED",
                details={"required_role": role.value},
            ).to_http_exception()
        return current_user

    return checker


get_current_coach = require_role(RoleName.COACH)
get_current_student = require_role(RoleName.STUDENT)
