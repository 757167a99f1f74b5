"""
OAuth sign-in — link an external provider profile to a local account.

Also holds the CSRF ``state`` helpers used around the provider redirect.
"""

from __future__ import annotations

import logging
import secrets
import time

import jwt

from auth.errors import MissingProviderEmail, ValidationError
from auth.jwt import signing_secret
from config.settings import config
from connectors.base import ProviderProfile
from database.models import DEFAULT_ROLE, User
from database.users import UserStore

logger = logging.getLogger(__name__)

_STATE_TTL = 600  # seconds


# ── State token helpers (CSRF protection) ──────────────────────────────


def _state_secret() -> str:
    return config.oauth_state_secret or signing_secret()


def create_state() -> str:
    """Signed, short-lived state string for the consent redirect."""
    now = int(time.time())
    payload = {"nonce": secrets.token_urlsafe(12), "iat": now, "exp": now + _STATE_TTL}
    return jwt.encode(payload, _state_secret(), algorithm="HS256")


def verify_state(state: str) -> None:
    """Raises ``ValidationError`` on a forged or expired state."""
    try:
        jwt.decode(state, _state_secret(), algorithms=["HS256"], options={"require": ["exp", "nonce"]})
    except jwt.PyJWTError as exc:
        raise ValidationError(f"Invalid or expired OAuth state: {exc}") from exc


# ── Account linking ────────────────────────────────────────────────────


async def link_provider_profile(store: UserStore, profile: ProviderProfile) -> User:
    """
    Find or create the local account for a provider profile.

    1. Already linked by provider id → returned unchanged.
    2. Profile without an email → ``MissingProviderEmail``.
    3. Existing account with that email → provider id linked, avatar
       replaced, email marked verified.
    4. Otherwise a new verified account with the default role.
    """
    user = await store.find_by_provider_id(profile.id)
    if user is not None:
        return user

    email = profile.primary_email
    if not email:
        raise MissingProviderEmail()

    user = await store.find_by_email(email)
    if user is not None:
        user.google_id = profile.id
        user.avatar = profile.primary_photo
        user.email_verified = True
        await store.save(user)
        logger.info("Linked Google account %s to existing user %s", profile.id, user.email)
        return user

    user = await store.create(
        name=(profile.display_name or email.split("@")[0])[:50],
        email=email,
        google_id=profile.id,
        avatar=profile.primary_photo,
        email_verified=True,
        role=DEFAULT_ROLE.value,
    )
    logger.info("Created user %s from Google account %s", user.email, profile.id)
    return user
