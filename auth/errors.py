"""
Error taxonomy for the authentication service.

Every ``AuthError`` carries the HTTP status it maps to; the handlers in
``api.middleware`` turn it into ``{"success": false, "message": ...}``.
"""

from __future__ import annotations


class AuthError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    default_message = "Invalid request"


class InvalidRole(ValidationError):
    default_message = "Invalid user type"


class EmailTaken(AuthError):
    status_code = 400
    default_message = "Email already exists"


class InvalidCredentials(AuthError):
    status_code = 400
    default_message = "Invalid credentials"


class MissingProviderEmail(AuthError):
    status_code = 400
    default_message = "Google profile has no email"


class Unauthorized(AuthError):
    status_code = 401
    default_message = "Access denied. No token provided."


class InvalidOrExpiredToken(AuthError):
    status_code = 401
    default_message = "Invalid or expired token"


class Forbidden(AuthError):
    status_code = 403
    default_message = "Access denied"


class NotFound(AuthError):
    status_code = 404
    default_message = "User not found"


class InternalError(AuthError):
    status_code = 500


class ProviderUnavailable(AuthError):
    status_code = 503
    default_message = "Google sign-in is not configured"


# ── Non-HTTP errors ────────────────────────────────────────────────────


class DuplicateKey(Exception):
    """Raised by the store when a unique index is violated."""


class ConfigurationError(RuntimeError):
    """Required configuration is missing or unusable."""
