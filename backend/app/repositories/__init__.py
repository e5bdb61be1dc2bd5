# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the coaching platform.

This package is the persistence port of the scheduler and the booking
state machine. Services never issue queries directly; they go through
these repositories.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- SessionRepository: overlap checks, ownership lookups, calendar listings
- BookingRepository: active-request lookups and atomic status transitions
- SubscriptionRepository: student → coach subscriptions
- UserRepository: coach/student lookups and directories
- CreditRepository: coach credit accounts and guarded deductions

Usage:
    from app.repositories import RepositoryFactory

    repository = RepositoryFactory.create_session_repository(db)
    clash = repository.find_overlapping_session(coach_id, start, end)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .credit_repository import CreditRepository
from .factory import RepositoryFactory
from .session_repository import SessionRepository
from .subscription_repository import SubscriptionRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CreditRepository",
    "RepositoryFactory",
    "SessionRepository",
    "SubscriptionRepository",
    "UserRepository",
]
