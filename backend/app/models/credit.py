# backend/app/models/credit.py
"""
Coach credit balance.

Each coach holds one credit account. A fixed amount is deducted for
every calendar day since the last deduction; the balance never goes
below zero.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class CoachCredit(Base):
    """Credit account of one coach."""

    __tablename__ = "coach_credits"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    coach_id = Column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    balance = Column(Numeric(10, 2), nullable=False, default=Decimal("100.00"))
    last_deduction_date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    coach = relationship("User", back_populates="credit")

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_coach_credits_balance"),)

    def __repr__(self) -> str:
        return f"<CoachCredit coach={self.coach_id} balance={self.balance}>"
