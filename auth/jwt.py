"""
JWT creation and verification.

Session tokens are HS256 JWTs carrying ``userId`` + ``email``.
Purpose tokens (email verification, password reset) carry no identity,
only an expiry and a random ``jti``.

Secret key is loaded from ``config.jwt_secret`` (env var: ``JWT_SECRET``).
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from auth.errors import ConfigurationError, InvalidOrExpiredToken
from config.settings import config

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_FALLBACK_SECRET = "fallback-secret-change-in-production"

_warned_fallback = False


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str


def signing_secret() -> str:
    """
    Return the process-wide signing secret.

    Production refuses to run without ``JWT_SECRET``; other environments
    fall back to a fixed development secret and log a warning once.
    """
    global _warned_fallback

    if config.jwt_secret:
        return config.jwt_secret
    if config.is_production:
        raise ConfigurationError("JWT_SECRET must be set in production")
    if not _warned_fallback:
        logger.warning("JWT_SECRET not set — using an insecure development fallback secret")
        _warned_fallback = True
    return _FALLBACK_SECRET


def _encode(claims: Dict[str, Any], expires_in: int) -> str:
    now = int(time.time())
    payload = {**claims, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, signing_secret(), algorithm=_ALGORITHM)


def _decode(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token,
            signing_secret(),
            algorithms=[_ALGORITHM],
            options={"require": ["exp", "iat"]},
            leeway=0,
        )
    except jwt.PyJWTError as exc:
        logger.debug("Token rejected: %s", exc)
        raise InvalidOrExpiredToken() from exc


def create_token(user_id: str, email: str, expires_in: Optional[int] = None) -> str:
    """Create a signed session token for ``user_id``."""
    if expires_in is None:
        expires_in = config.jwt_expiry_seconds
    return _encode({"userId": str(user_id), "email": email}, expires_in)


def verify_token(token: str) -> TokenPayload:
    """
    Verify a session token and return its identity.

    Raises ``InvalidOrExpiredToken`` on a bad signature, malformed
    structure, missing claims or an expiry in the past.
    """
    payload = _decode(token)
    user_id = payload.get("userId")
    email = payload.get("email")
    if not isinstance(user_id, str) or not isinstance(email, str):
        raise InvalidOrExpiredToken()
    return TokenPayload(user_id=user_id, email=email)


def create_verification_token() -> str:
    """24h token for the email-verification link."""
    return _encode({"jti": secrets.token_urlsafe(16)}, config.verification_token_expiry_seconds)


def create_reset_token() -> str:
    """1h token for the password-reset link."""
    return _encode({"jti": secrets.token_urlsafe(16)}, config.reset_token_expiry_seconds)


def verify_purpose_token(token: str) -> None:
    """Check signature and expiry of a verification/reset token."""
    _decode(token)
