# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each factory builds a service bound to the request's database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_service import BookingService
from ...services.credit_service import CoachCreditService
from ...services.profile_service import ProfileService
from ...services.session_catalog_service import SessionCatalogService
from ...services.session_scheduler import SessionScheduler
from ...services.subscription_service import SubscriptionService
from .database import get_db


def get_session_scheduler(db: Session = Depends(get_db)) -> SessionScheduler:
    """Get SessionScheduler instance for dependency injection."""
    return SessionScheduler(db)


def get_session_catalog_service(db: Session = Depends(get_db)) -> SessionCatalogService:
    return SessionCatalogService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Get BookingService instance for dependency injection."""
    return BookingService(db)


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_coach_credit_service(db: Session = Depends(get_db)) -> CoachCreditService:
    return CoachCreditService(db)
