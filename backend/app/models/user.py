# backend/app/models/user.py
"""
User model for the coaching platform.

Users are either coaches (who publish sessions) or students (who request
bookings). Credentials and OAuth identities are handled outside this
service and are intentionally not stored here.
"""

from typing import Any

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import RoleName
from ..database import Base


class User(Base):
    """A platform account holding exactly one role."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    description = Column(Text, nullable=True)
    # Coach expertise tags, a JSON list of strings
    expertise = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sessions = relationship(
        "CoachingSession",
        back_populates="coach",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    bookings = relationship("Booking", back_populates="student", passive_deletes=True)
    credit = relationship(
        "CoachCredit", back_populates="coach", uselist=False, passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("role IN ('coach', 'student')", name="ck_users_role"),
    )

    def __init__(self, **kwargs: Any) -> None:
        role = kwargs.get("role")
        if isinstance(role, RoleName):
            kwargs["role"] = role.value
        super().__init__(**kwargs)

    @property
    def is_coach(self) -> bool:
        return self.role == RoleName.COACH.value

    @property
    def is_student(self) -> bool:
        return self.role == RoleName.STUDENT.value

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} ({self.role})>"
