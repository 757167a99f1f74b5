"""
Request / response schemas for the auth API.

``UserOut`` is the only external representation of a user; it lists the
public fields explicitly so secret-bearing columns never leave the
service.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from auth.password import MAX_PASSWORD_BYTES, password_too_long
from database.models import User

_EMAIL_PATTERN = r"^\s*[^\s@]+@[^\s@]+\.[^\s@]+\s*$"


def _check_password_bytes(value: str) -> str:
    # bcrypt limit is in bytes; multibyte characters reach it before max_length
    if password_too_long(value):
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# ── Requests ───────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    role: Optional[str] = Field(None, validation_alias=AliasChoices("role", "userType"))

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    avatar: Optional[str] = Field(None, max_length=1024)


class VerifyEmailRequest(BaseModel):
    token: str


class EmailRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=_EMAIL_PATTERN)


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


# ── Responses ──────────────────────────────────────────────────────────


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    name: str
    email: str
    email_verified: bool = Field(serialization_alias="emailVerified")
    avatar: Optional[str] = None
    role: str
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite returns naive timestamps; they are written as UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def sanitize_user(user: User) -> Dict[str, Any]:
    """JSON-ready public view of a user record."""
    return UserOut.model_validate(user).model_dump(by_alias=True, mode="json")
