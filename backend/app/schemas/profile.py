# backend/app/schemas/profile.py
"""Profile and user directory schemas."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from ._strict_base import StrictRequestModel
from .base import StandardizedModel

MAX_EXPERTISE_TAG_LENGTH = 50


def normalize_expertise(value: Any) -> List[str]:
    """Keep non-empty string tags of at most 50 characters, trimmed, in order."""
    tags = []
    for item in value:
        if not isinstance(item, str):
            continue
        tag = item.strip()
        if tag and len(tag) <= MAX_EXPERTISE_TAG_LENGTH:
            tags.append(tag)
    return tags


class ProfileUpdateRequest(StrictRequestModel):
    """
    Partial profile update.

    ``description`` and ``expertise`` only apply to coaches. Invalid
    expertise entries are dropped rather than rejected.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    expertise: Optional[List[str]] = None

    @field_validator("expertise", mode="before")
    @classmethod
    def _filter_expertise(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, list):
            raise ValueError("expertise must be a list of strings")
        return normalize_expertise(value)


class ProfileResponse(StandardizedModel):
    id: str
    email: str
    name: str
    role: str
    description: Optional[str] = None
    expertise: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator("expertise", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ProfileUpdatedResponse(StandardizedModel):
    message: str
    user: ProfileResponse


class StudentSummaryResponse(StandardizedModel):
    id: str
    name: str
    email: str
    created_at: Optional[datetime] = None


class CoachSummaryResponse(StandardizedModel):
    id: str
    name: str
    email: str
