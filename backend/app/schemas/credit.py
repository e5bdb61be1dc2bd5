# backend/app/schemas/credit.py
"""Coach credit schemas."""

from datetime import date

from .base import Money, StandardizedModel


class CreditBalanceResponse(StandardizedModel):
    balance: Money
    last_deduction_date: date


class CreditsInitializedResponse(StandardizedModel):
    message: str
    initialized_count: int
