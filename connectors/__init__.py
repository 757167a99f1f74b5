"""
connectors — external identity providers for OAuth2 sign-in.

Provides:
  • ``BaseIdentityProvider`` — consent URL + code → profile exchange
  • ``ProviderProfile`` — provider id, display name, emails, photos
  • ``GoogleConnector`` — "Sign in with Google"
"""
