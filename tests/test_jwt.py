"""
Tests for session and purpose tokens.
"""

import time

import jwt as pyjwt
import pytest

import auth.jwt as token_codec
from auth.errors import ConfigurationError, InvalidOrExpiredToken
from auth.jwt import (
    create_reset_token,
    create_token,
    create_verification_token,
    verify_purpose_token,
    verify_token,
)


class TestSessionTokens:
    def test_round_trip(self):
        token = create_token("0b7f0c4e-1111-4222-8333-944445555666", "jane@nextstay.io")
        payload = verify_token(token)
        assert payload.user_id == "0b7f0c4e-1111-4222-8333-944445555666"
        assert payload.email == "jane@nextstay.io"

    def test_default_expiry_is_seven_days(self):
        token = create_token("u1", "a@b.io")
        claims = pyjwt.decode(token, options={"verify_signature": False})
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    @pytest.mark.parametrize("expires_in", [0, -60])
    def test_expired_token_rejected(self, expires_in):
        token = create_token("u1", "a@b.io", expires_in=expires_in)
        with pytest.raises(InvalidOrExpiredToken):
            verify_token(token)

    def test_wrong_secret_rejected(self):
        now = int(time.time())
        forged = pyjwt.encode(
            {"userId": "u1", "email": "a@b.io", "iat": now, "exp": now + 3600},
            "some-other-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidOrExpiredToken):
            verify_token(forged)

    def test_tampered_payload_rejected(self):
        token = create_token("u1", "a@b.io")
        header, payload, sig = token.split(".")
        tampered = ".".join([header, payload[:-2] + ("A" if payload[-2] != "A" else "B") + payload[-1], sig])
        with pytest.raises(InvalidOrExpiredToken):
            verify_token(tampered)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "Bearer xyz"])
    def test_malformed_rejected(self, garbage):
        with pytest.raises(InvalidOrExpiredToken):
            verify_token(garbage)

    def test_expired_and_forged_share_one_message(self):
        expired = create_token("u1", "a@b.io", expires_in=-1)
        with pytest.raises(InvalidOrExpiredToken) as e1:
            verify_token(expired)
        with pytest.raises(InvalidOrExpiredToken) as e2:
            verify_token("abc.def.ghi")
        assert e1.value.message == e2.value.message

    def test_purpose_token_is_not_a_session_token(self):
        with pytest.raises(InvalidOrExpiredToken):
            verify_token(create_verification_token())


class TestPurposeTokens:
    def test_verification_token_lifetime(self):
        claims = pyjwt.decode(create_verification_token(), options={"verify_signature": False})
        assert claims["exp"] - claims["iat"] == 24 * 3600
        assert "userId" not in claims and "email" not in claims

    def test_reset_token_lifetime(self):
        claims = pyjwt.decode(create_reset_token(), options={"verify_signature": False})
        assert claims["exp"] - claims["iat"] == 3600

    def test_tokens_are_unique(self):
        assert create_reset_token() != create_reset_token()

    def test_verify_purpose_token(self):
        verify_purpose_token(create_reset_token())
        with pytest.raises(InvalidOrExpiredToken):
            verify_purpose_token("nope")


class TestSigningSecret:
    def test_fallback_outside_production(self, monkeypatch):
        monkeypatch.setattr(token_codec.config, "jwt_secret", "")
        monkeypatch.setattr(token_codec.config, "environment", "development")
        assert token_codec.signing_secret() == "fallback-secret-change-in-production"

    def test_missing_secret_is_fatal_in_production(self, monkeypatch):
        monkeypatch.setattr(token_codec.config, "jwt_secret", "")
        monkeypatch.setattr(token_codec.config, "environment", "production")
        with pytest.raises(ConfigurationError):
            token_codec.signing_secret()
        with pytest.raises(ConfigurationError):
            create_token("u1", "a@b.io")
