"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor (``BCRYPT_ROUNDS``).
bcrypt only accepts ``MAX_PASSWORD_BYTES`` of UTF-8 input.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

import bcrypt

from auth.errors import ValidationError
from config.settings import config

MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (auto-salted)."""
    if password_too_long(password):
        raise ValidationError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=config.bcrypt_rounds)).decode()


@lru_cache(maxsize=1)
def _dummy_hash() -> bytes:
    return bcrypt.hashpw(b"nextstay-dummy-password", bcrypt.gensalt(rounds=config.bcrypt_rounds))


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Constant-time comparison against a bcrypt hash.

    Without a hash (unknown account, Google-only account) a dummy hash is
    checked instead so the bcrypt cost is paid either way; it never matches.
    """
    if password_too_long(password):
        return False
    if not password_hash:
        bcrypt.checkpw(password.encode("utf-8"), _dummy_hash())
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode())
    except (ValueError, TypeError):
        return False
