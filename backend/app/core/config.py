# backend/app/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Application settings, read from the environment (case-insensitive)."""

    environment: str = Field(default="development", description="deployment environment")
    log_level: str = Field(default="INFO")

    database_url: str = Field(
        default="sqlite:///./coachbook.db",
        description="SQLAlchemy URL for the primary database",
    )
    database_echo: bool = False

    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        description="Key used to sign access tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Hard ceiling on occurrences generated by a single recurring request
    max_recurring_occurrences: int = Field(default=52, ge=1)

    # Cross-worker locks; empty disables the Redis layer
    redis_url: Optional[str] = Field(default=None, description="Redis URL for scheduling locks")
    lock_namespace: str = "coachbook"
    lock_ttl_seconds: int = Field(default=30, ge=1)
    lock_wait_seconds: float = Field(default=10.0, gt=0)

    # Coach credits
    coach_initial_credits: Decimal = Decimal("100.00")
    coach_daily_credit_deduction: Decimal = Decimal("1.00")

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    is_testing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,  # allows SECRET_KEY to match secret_key
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = (value or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level


settings = Settings()

if is_running_tests():
    settings.is_testing = True
