# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_current_coach,
    get_current_student,
    get_current_user,
    get_current_user_optional,
    require_role,
)
from .database import get_db
from .services import (
    get_booking_service,
    get_coach_credit_service,
    get_profile_service,
    get_session_catalog_service,
    get_session_scheduler,
    get_subscription_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_user_optional",
    "get_current_coach",
    "get_current_student",
    "require_role",
    # Database
    "get_db",
    # Services
    "get_session_scheduler",
    "get_session_catalog_service",
    "get_booking_service",
    "get_subscription_service",
    "get_profile_service",
    "get_coach_credit_service",
]
