"""
SQLAlchemy ORM models.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Uuid
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Role(str, enum.Enum):
    TENANT = "tenant"
    MANAGER = "manager"


DEFAULT_ROLE = Role.TENANT


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), unique=True, index=True, nullable=True)
    avatar = Column(String(1024), nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(512), nullable=True, index=True)
    reset_password_token = Column(String(512), nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)
    role = Column(String(16), nullable=False, default=DEFAULT_ROLE.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} ({self.role})>"
