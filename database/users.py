"""
User record store — lookups and writes for the ``users`` table.

Emails are normalized (trimmed, lower-cased) on every lookup and write.
Passwords are hashed here, explicitly, whenever a plaintext password is
passed to ``create`` or ``save``; plaintext never reaches the database.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import DuplicateKey
from auth.password import hash_password
from database.models import DEFAULT_ROLE, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_uuid(value: str | uuid.UUID) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


class UserStore:
    """Persistence for ``User`` records on a single session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Lookups ─────────────────────────────────────────────────────────

    async def _first(self, *criteria) -> Optional[User]:
        result = await self.session.execute(select(User).where(*criteria))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self._first(User.email == normalize_email(email))

    async def find_by_id(self, user_id: str | uuid.UUID) -> Optional[User]:
        uid = _to_uuid(user_id)
        if uid is None:
            return None
        return await self.session.get(User, uid)

    async def find_by_provider_id(self, provider_id: str) -> Optional[User]:
        return await self._first(User.google_id == provider_id)

    async def find_by_verification_token(self, token: str) -> Optional[User]:
        return await self._first(User.verification_token == token)

    async def find_by_reset_token(self, token: str) -> Optional[User]:
        return await self._first(User.reset_password_token == token)

    async def list_all(self) -> list[User]:
        result = await self.session.execute(select(User).order_by(User.created_at))
        return list(result.scalars().all())

    # ── Writes ──────────────────────────────────────────────────────────

    async def create(
        self,
        name: str,
        email: str,
        password: Optional[str] = None,
        **fields: Any,
    ) -> User:
        """
        Insert a new user.

        Raises ``DuplicateKey`` if the email (or provider id) is already
        taken; callers are expected to check first.
        """
        user = User(
            name=name.strip(),
            email=normalize_email(email),
            role=fields.pop("role", DEFAULT_ROLE.value),
            **fields,
        )
        if password is not None:
            user.password_hash = hash_password(password)
        self.session.add(user)
        await self._flush(user)
        logger.debug("Created user %s (%s)", user.id, user.email)
        return user

    async def save(self, user: User, password: Optional[str] = None) -> User:
        """Persist changes to ``user``, hashing ``password`` if one is given."""
        user.email = normalize_email(user.email)
        if password is not None:
            user.password_hash = hash_password(password)
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        await self._flush(user)
        return user

    async def _flush(self, user: User) -> None:
        email = user.email
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Unique constraint violated for %s: %s", email, exc.orig)
            raise DuplicateKey(email) from exc
