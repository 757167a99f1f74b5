"""
AuthService — registration, login, profile and the email-verification /
password-reset workflows.

The service never commits; route handlers own the transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from auth.errors import (
    DuplicateKey,
    EmailTaken,
    InternalError,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidRole,
    NotFound,
    ValidationError,
)
from auth.jwt import (
    create_reset_token,
    create_token,
    create_verification_token,
    verify_purpose_token,
)
from auth.password import verify_password
from config.settings import config
from database.models import DEFAULT_ROLE, Role, User
from database.users import UserStore, normalize_email
from notifications.email import EmailDeliveryError, EmailService

logger = logging.getLogger(__name__)

_ROLES = {r.value for r in Role}


def resolve_role(role: Optional[str]) -> str:
    """Validate a requested role; ``None``/empty means the default role."""
    if not role:
        return DEFAULT_ROLE.value
    if role not in _ROLES:
        raise InvalidRole()
    return role


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthService:
    def __init__(self, store: UserStore, mailer: Optional[EmailService] = None):
        self.store = store
        self.mailer = mailer

    # ── Credentials ─────────────────────────────────────────────────────

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
    ) -> Tuple[User, str]:
        """Create a local account and issue a session token."""
        role = resolve_role(role)
        email = normalize_email(email)

        if await self.store.find_by_email(email) is not None:
            raise EmailTaken()

        try:
            user = await self.store.create(
                name=name,
                email=email,
                password=password,
                role=role,
                email_verified=False,
                verification_token=create_verification_token(),
            )
        except DuplicateKey as exc:
            # Lost a race with a concurrent registration
            raise InternalError("Registration failed") from exc

        token = create_token(str(user.id), user.email)
        logger.info("Registered user %s (%s, role=%s)", user.email, user.id, user.role)
        return user, token

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Check an email/password pair and issue a session token.

        Unknown email, Google-only account and wrong password all raise
        the same ``InvalidCredentials``.
        """
        user = await self.store.find_by_email(email)
        # bcrypt runs even for unknown emails so timing matches a wrong password
        matched = verify_password(password, user.password_hash if user is not None else None)
        if user is None or not matched:
            logger.info("Failed login for %s", normalize_email(email))
            raise InvalidCredentials()

        token = create_token(str(user.id), user.email)
        logger.info("Login: %s (%s)", user.email, user.id)
        return user, token

    async def get_profile(self, user_id: str) -> User:
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFound()
        return user

    async def update_profile(
        self,
        user: User,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> User:
        if name is not None:
            user.name = name.strip()
        if avatar is not None:
            user.avatar = avatar or None
        return await self.store.save(user)

    # ── Email verification ──────────────────────────────────────────────

    async def verify_email(self, token: str) -> User:
        verify_purpose_token(token)
        user = await self.store.find_by_verification_token(token)
        if user is None:
            raise InvalidOrExpiredToken()

        user.email_verified = True
        user.verification_token = None
        await self.store.save(user)
        logger.info("Email verified for %s", user.email)
        return user

    async def resend_verification(self, email: str) -> None:
        """Rotate the verification token and mail it (synchronously)."""
        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFound()
        if user.email_verified:
            raise ValidationError("Email is already verified")

        user.verification_token = create_verification_token()
        await self.store.save(user)
        await self._send(self._mailer().send_verification_email, user.email, user.verification_token)

    # ── Password reset ──────────────────────────────────────────────────

    async def forgot_password(self, email: str) -> None:
        user = await self.store.find_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email %s", normalize_email(email))
            return

        user.reset_password_token = create_reset_token()
        user.reset_password_expires = datetime.now(timezone.utc) + timedelta(
            seconds=config.reset_token_expiry_seconds
        )
        await self.store.save(user)
        await self._send(self._mailer().send_password_reset_email, user.email, user.reset_password_token)

    async def reset_password(self, token: str, new_password: str) -> User:
        verify_purpose_token(token)
        user = await self.store.find_by_reset_token(token)
        if user is None or user.reset_password_expires is None:
            raise InvalidOrExpiredToken()
        if _as_aware(user.reset_password_expires) <= datetime.now(timezone.utc):
            raise InvalidOrExpiredToken()

        user.reset_password_token = None
        user.reset_password_expires = None
        await self.store.save(user, password=new_password)
        logger.info("Password reset for %s", user.email)
        return user

    # ── Helpers ─────────────────────────────────────────────────────────

    def _mailer(self) -> EmailService:
        if self.mailer is None:
            raise InternalError("Email service is not configured")
        return self.mailer

    @staticmethod
    async def _send(send, email: str, token: str) -> None:
        try:
            await send(email, token)
        except EmailDeliveryError as exc:
            raise InternalError("Failed to send email") from exc
