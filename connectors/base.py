"""
BaseIdentityProvider — abstract interface for OAuth2 sign-in providers.

A provider builds its consent URL and turns the authorization code from
the redirect back into a ``ProviderProfile``.  Instances are constructed
explicitly with their credentials and handed to the routes that use them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ProviderProfile:
    """Account representation returned by an external identity provider."""

    id: str
    display_name: str
    emails: List[str] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)

    @property
    def primary_email(self) -> Optional[str]:
        return self.emails[0] if self.emails else None

    @property
    def primary_photo(self) -> Optional[str]:
        return self.photos[0] if self.photos else None


class BaseIdentityProvider(ABC):
    """Abstract base for sign-in providers."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug: 'google'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes requested at consent time."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Opaque, signed CSRF state echoed back on the callback.

        Returns
        -------
        The full URL to redirect the browser to.
        """
        ...

    @abstractmethod
    async def fetch_profile(self, code: str) -> ProviderProfile:
        """
        Exchange the authorization code and load the signed-in profile.

        Raises ``httpx.HTTPError`` (or ``ValueError`` on an unusable
        response) when the provider rejects the exchange.
        """
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """Return True if client id / secret are present."""
        return True
