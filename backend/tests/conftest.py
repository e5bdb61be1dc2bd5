# backend/tests/conftest.py
"""
Pytest configuration for the coaching platform.

Every test gets a fresh in-memory SQLite database (StaticPool, foreign
keys on) so services can commit freely. The FastAPI client overrides
get_db to hand out sessions bound to the same engine.
"""

import os

# Set testing mode BEFORE any app imports
os.environ["is_testing"] = "true"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["REDIS_URL"] = ""

from datetime import datetime, timedelta
from typing import Callable, Dict, Generator, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.dependencies.database import get_db
from app.auth import create_access_token
from app.core.booking_lock import reset_locks
from app.core.config import settings
from app.core.enums import RoleName
from app.core.timezone_utils import utc_now
from app.database import Base, create_app_engine
from app.main import fastapi_app as app  # Use FastAPI instance for tests
from app import models as _models  # noqa: F401  registers models on Base.metadata
from app.models.booking import Booking, BookingStatus
from app.models.coaching_session import CoachingSession, SessionStatus, SessionVisibility
from app.models.user import User

settings.is_testing = True


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    test_engine = create_app_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _clear_booking_locks() -> Generator[None, None, None]:
    reset_locks()
    yield
    reset_locks()


# ============================================================================
# Users
# ============================================================================


def _make_user(db: Session, role: RoleName, name: str, email: str) -> User:
    user = User(email=email, name=name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def coach(db: Session) -> User:
    return _make_user(db, RoleName.COACH, "Carla Coach", "carla@example.com")


@pytest.fixture
def other_coach(db: Session) -> User:
    return _make_user(db, RoleName.COACH, "Otto Coach", "otto@example.com")


@pytest.fixture
def student(db: Session) -> User:
    return _make_user(db, RoleName.STUDENT, "Sam Student", "sam@example.com")


@pytest.fixture
def other_student(db: Session) -> User:
    return _make_user(db, RoleName.STUDENT, "Sky Student", "sky@example.com")


@pytest.fixture
def third_student(db: Session) -> User:
    return _make_user(db, RoleName.STUDENT, "Toni Student", "toni@example.com")


# ============================================================================
# Sessions and bookings
# ============================================================================


@pytest.fixture
def future_start() -> datetime:
    """Top of the hour one week from now (naive UTC)."""
    return utc_now().replace(minute=0, second=0, microsecond=0) + timedelta(days=7)


@pytest.fixture
def make_session(db: Session) -> Callable[..., CoachingSession]:
    def _make(
        coach: User,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        **overrides,
    ) -> CoachingSession:
        values = {
            "coach_id": coach.id,
            "title": "Existing session",
            "start_time": start_time,
            "end_time": end_time or start_time + timedelta(hours=1),
            "max_students": 1,
            "status": SessionStatus.AVAILABLE,
            "visibility": SessionVisibility.PUBLIC,
        }
        values.update(overrides)
        session = CoachingSession(**values)
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    return _make


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    """Insert a booking row directly, bypassing the state machine."""

    def _make(session: CoachingSession, student: User, status: BookingStatus) -> Booking:
        booking = Booking(session_id=session.id, student_id=student.id, status=status)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


# ============================================================================
# HTTP
# ============================================================================


def auth_headers_for(user: User) -> Dict[str, str]:
    token = create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    return auth_headers_for


@pytest.fixture
def coach_headers(coach: User) -> Dict[str, str]:
    return auth_headers_for(coach)


@pytest.fixture
def student_headers(student: User) -> Dict[str, str]:
    return auth_headers_for(student)


@pytest.fixture
def client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
