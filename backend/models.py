"""
Pydantic models for the waitlist API
"""
import re
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from errors import ValidationError


MAX_EMAIL_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """Uniqueness key for an email: surrounding whitespace trimmed, lowercased."""
    return email.strip().lower()


def validate_email(email: str) -> str:
    """Format check only. Returns the normalized address."""
    normalized = normalize_email(email or "")
    if len(normalized) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(normalized):
        raise ValidationError("Invalid email", detail=repr(email))
    return normalized


class WaitlistEntry(BaseModel):
    """One signup, unique per normalized email"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    email: str
    completed_signup: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("email")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # naive timestamps are treated as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SignupRequest(BaseModel):
    email: str


class SignupResponse(BaseModel):
    """Outcome of a signup or completion attempt"""
    status: str
    email: Optional[str] = None
    next_url: Optional[str] = None
    error: Optional[str] = None
