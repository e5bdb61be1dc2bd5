# backend/app/models/subscription.py
"""Students following coaches for new-session alerts."""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class CoachSubscription(Base):
    """A student following a coach. Gates subscribers_only visibility."""

    __tablename__ = "coach_subscriptions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    coach_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    coach = relationship("User", foreign_keys=[coach_id])
    student = relationship("User", foreign_keys=[student_id])

    __table_args__ = (
        UniqueConstraint("student_id", "coach_id", name="uq_coach_subscriptions_pair"),
    )

    def __repr__(self) -> str:
        return f"<CoachSubscription student={self.student_id} coach={self.coach_id}>"
