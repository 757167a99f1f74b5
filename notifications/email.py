"""
EmailService — SMTP delivery for verification and password-reset mail.

Configuration comes from ``EMAIL_SERVER_HOST``, ``EMAIL_SERVER_PORT``,
``EMAIL_SERVER_USER``, ``EMAIL_SERVER_PASSWORD`` and ``EMAIL_FROM``.
Constructing the service without them raises ``ConfigurationError``.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from typing import Optional
from urllib.parse import urlencode

from auth.errors import ConfigurationError
from config.settings import Settings, config

logger = logging.getLogger(__name__)

_SENDER_NAME = "NextStay"


class EmailDeliveryError(RuntimeError):
    """The SMTP server refused or could not be reached."""


class EmailService:
    def __init__(self, settings: Settings = config):
        missing = [
            name
            for name, value in (
                ("EMAIL_SERVER_HOST", settings.email_server_host),
                ("EMAIL_SERVER_PORT", settings.email_server_port),
                ("EMAIL_SERVER_USER", settings.email_server_user),
                ("EMAIL_SERVER_PASSWORD", settings.email_server_password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Email server environment variables are not set: {', '.join(missing)}"
            )

        self.host = settings.email_server_host
        self.port = int(settings.email_server_port)
        self.user = settings.email_server_user
        self.password = settings.email_server_password
        self.sender = settings.email_from or settings.email_server_user
        self.client_url = settings.client_url.rstrip("/")

    def _build_message(self, to: str, subject: str, html: str, text: Optional[str]) -> MIMEMultipart:
        mime = MIMEMultipart("alternative")
        mime["To"] = to
        mime["From"] = f'"{_SENDER_NAME}" <{self.sender}>'
        mime["Subject"] = subject
        if text:
            mime.attach(MIMEText(text, "plain"))
        mime.attach(MIMEText(html, "html"))
        return mime

    def _deliver(self, mime: MIMEMultipart) -> None:
        # Port 465 is implicit TLS; anything else upgrades with STARTTLS when offered
        if self.port == 465:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=30)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=30)
        with smtp:
            if self.port != 465:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
            smtp.login(self.user, self.password)
            smtp.send_message(mime)

    async def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> None:
        mime = self._build_message(to, subject, html, text)
        try:
            await asyncio.to_thread(self._deliver, mime)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email sending failed (to=%s): %s", to, exc)
            raise EmailDeliveryError("Failed to send email") from exc
        logger.info("Email sent → to=%s  subject=%s", to, subject)

    async def send_verification_email(self, email: str, token: str) -> None:
        url = f"{self.client_url}/auth/verify-email?{urlencode({'token': token, 'email': email})}"
        await self.send_email(
            to=email,
            subject=f"Verify Your Email - {_SENDER_NAME}",
            html=f'<p>Please verify your email by clicking <a href="{url}">here</a></p>',
            text=f"Please verify your email: {url}",
        )

    async def send_password_reset_email(self, email: str, token: str) -> None:
        url = f"{self.client_url}/auth/reset-password?{urlencode({'token': token})}"
        await self.send_email(
            to=email,
            subject=f"Reset Your Password - {_SENDER_NAME}",
            html=f'<p>Reset your password by clicking <a href="{url}">here</a></p>',
            text=f"Reset your password: {url}",
        )


@lru_cache(maxsize=1)
def get_email_service() -> EmailService:
    """Process-wide mailer (FastAPI dependency). Raises if unconfigured."""
    return EmailService()


def get_optional_email_service() -> Optional[EmailService]:
    """Mailer for best-effort sends; ``None`` when mail is not configured."""
    try:
        return get_email_service()
    except ConfigurationError as exc:
        logger.warning("%s — verification emails will not be sent", exc)
        return None
