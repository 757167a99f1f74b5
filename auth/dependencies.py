"""
FastAPI dependencies for authentication.

Provides ``db_session``, the store/service factories, and the access
checks used by protected routes:

  • ``get_current_user``  — bearer token required (401 otherwise)
  • ``get_optional_user`` — same checks, ``None`` instead of failing
  • ``require_roles``     — required + role allow-set (403 otherwise)
  • ``require_admin``     — required + configured admin email
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import Forbidden, InvalidOrExpiredToken, Unauthorized
from auth.jwt import verify_token
from auth.service import AuthService
from config.settings import config
from database.models import User
from database.session import get_db_session
from database.users import UserStore, normalize_email

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported with our own 401 body
_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_user_store(session: AsyncSession = Depends(db_session)) -> UserStore:
    return UserStore(session)


def get_auth_service(store: UserStore = Depends(get_user_store)) -> AuthService:
    return AuthService(store)


async def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    store: UserStore,
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access denied. No token provided.")

    try:
        payload = verify_token(credentials.credentials)
    except InvalidOrExpiredToken as exc:
        raise Unauthorized("Token is not valid.") from exc

    user = await store.find_by_id(payload.user_id)
    if user is None:
        raise Unauthorized("Token is not valid. User not found.")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    store: UserStore = Depends(get_user_store),
) -> User:
    """
    Extract and verify the Bearer token, returning the authenticated
    ``User``.  The user is also attached to ``request.state.user``.
    """
    user = await _resolve_user(credentials, store)
    request.state.user = user
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    store: UserStore = Depends(get_user_store),
) -> Optional[User]:
    """Like ``get_current_user`` but never blocks the request."""
    try:
        user = await _resolve_user(credentials, store)
    except Unauthorized as exc:
        if credentials is not None:
            logger.debug("Optional auth: %s", exc.message)
        return None
    request.state.user = user
    return user


def require_roles(*roles: str):
    """Dependency factory: authenticated user whose role is in ``roles``."""
    allowed = {getattr(r, "value", r) for r in roles}

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise Forbidden("Access denied")
        return user

    return _check


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Authenticated user whose email is the configured ``ADMIN_EMAIL``."""
    admin = normalize_email(config.admin_email) if config.admin_email else ""
    if not admin or normalize_email(user.email) != admin:
        raise Forbidden("Admin access required.")
    return user
