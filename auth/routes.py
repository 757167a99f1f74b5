"""
Auth API routes — register, login, profile, Google sign-in, email
verification and password reset.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import (
    db_session,
    get_auth_service,
    get_current_user,
    get_optional_user,
    get_user_store,
    require_admin,
    require_roles,
)
from auth.errors import ProviderUnavailable
from auth.jwt import create_token
from auth.oauth import create_state, link_provider_profile, verify_state
from auth.schemas import (
    EmailRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
    sanitize_user,
)
from auth.service import AuthService
from config.settings import config
from connectors.google import GoogleConnector
from database.models import Role, User
from database.users import UserStore
from notifications.email import (
    EmailDeliveryError,
    EmailService,
    get_email_service,
    get_optional_email_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@lru_cache(maxsize=1)
def get_google_connector() -> GoogleConnector:
    return GoogleConnector.from_settings(config)


def get_mailing_auth_service(
    store: UserStore = Depends(get_user_store),
    mailer: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(store, mailer=mailer)


def _client_redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{config.client_url.rstrip('/')}{path}?{urlencode(params)}"
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


async def _send_verification_email(mailer: EmailService, email: str, token: str) -> None:
    """Background task: a failed delivery never undoes the registration."""
    try:
        await mailer.send_verification_email(email, token)
    except EmailDeliveryError as exc:
        logger.warning("Verification email to %s not sent: %s", email, exc)


# ── Email / password ───────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    background_tasks: BackgroundTasks,
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(db_session),
    mailer: Optional[EmailService] = Depends(get_optional_email_service),
) -> Dict[str, Any]:
    """Register a new user."""
    user, token = await service.register(req.name, req.email, req.password, req.role)
    await session.commit()

    if mailer is not None:
        background_tasks.add_task(_send_verification_email, mailer, user.email, user.verification_token)
    return {"success": True, "data": {"user": sanitize_user(user), "token": token}}


@router.post("/login")
async def login(
    req: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Login with email + password."""
    user, token = await service.login(req.email, req.password)
    return {"success": True, "data": {"user": sanitize_user(user), "token": token}}


@router.get("/me")
async def me(
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Current authenticated user's profile."""
    profile = await service.get_profile(str(user.id))
    return {"success": True, "data": {"user": sanitize_user(profile)}}


@router.patch("/me")
async def update_me(
    req: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Edit name / avatar."""
    user = await service.update_profile(user, name=req.name, avatar=req.avatar)
    await session.commit()
    return {"success": True, "data": {"user": sanitize_user(user)}}


@router.get("/status")
async def auth_status(
    user: Optional[User] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """Whether the caller is signed in; never rejects the request."""
    return {
        "success": True,
        "data": {"authenticated": user is not None, "user": sanitize_user(user) if user else None},
    }


# ── Google sign-in ─────────────────────────────────────────────────────


@router.get("/google")
async def google_login(
    connector: GoogleConnector = Depends(get_google_connector),
) -> RedirectResponse:
    """Start the Google OAuth flow."""
    if not connector.is_configured():
        raise ProviderUnavailable()
    return RedirectResponse(connector.get_auth_url(create_state()), status_code=status.HTTP_302_FOUND)


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    connector: GoogleConnector = Depends(get_google_connector),
    store: UserStore = Depends(get_user_store),
    session: AsyncSession = Depends(db_session),
) -> RedirectResponse:
    """
    Google redirects here after consent.

    The browser is always redirected back to the client: with a session
    token on success, to the sign-in page with an error otherwise.
    """
    try:
        if error or not code or not state:
            raise ValueError(error or "missing code/state")
        verify_state(state)
        profile = await connector.fetch_profile(code)
        user = await link_provider_profile(store, profile)
        await session.commit()
        token = create_token(str(user.id), user.email)
    except Exception as exc:
        logger.error("Google OAuth callback failed: %s", exc)
        await session.rollback()
        return _client_redirect("/auth/signin", error="google_auth_failed")

    logger.info("Google sign-in: %s (%s)", user.email, user.id)
    return _client_redirect("/auth/callback", token=token, success="true")


# ── Email verification / password reset ────────────────────────────────


@router.post("/verify-email")
async def verify_email(
    req: VerifyEmailRequest,
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    user = await service.verify_email(req.token)
    await session.commit()
    return {"success": True, "data": {"user": sanitize_user(user)}}


@router.post("/resend-verification")
async def resend_verification(
    req: EmailRequest,
    service: AuthService = Depends(get_mailing_auth_service),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await service.resend_verification(req.email)
    await session.commit()
    return {"success": True, "message": "Verification email sent"}


@router.post("/forgot-password")
async def forgot_password(
    req: EmailRequest,
    service: AuthService = Depends(get_mailing_auth_service),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await service.forgot_password(req.email)
    await session.commit()
    return {
        "success": True,
        "message": "If an account exists for that email, a reset link has been sent",
    }


@router.post("/reset-password")
async def reset_password(
    req: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await service.reset_password(req.token, req.password)
    await session.commit()
    return {"success": True, "message": "Password has been reset"}


# ── Gated routes ───────────────────────────────────────────────────────


@router.get("/admin/users")
async def list_users(
    _admin: User = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
) -> Dict[str, Any]:
    """All accounts (admin only)."""
    users = await store.list_all()
    return {"success": True, "data": {"users": [sanitize_user(u) for u in users]}}


@router.get("/manager/ping")
async def manager_ping(
    user: User = Depends(require_roles(Role.MANAGER)),
) -> Dict[str, Any]:
    """Reachable by property managers only."""
    return {"success": True, "data": {"role": user.role}}
