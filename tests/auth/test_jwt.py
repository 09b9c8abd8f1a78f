"""Tests for bearer token management."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from nurnexus.auth.jwt import create_access_token, token_max_age_seconds, verify_token
from nurnexus.config import get_settings


def _encode(**overrides):
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "user-1",
        "iat": now,
        "exp": now + timedelta(hours=1),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token("3f2b9c1e-0000-4000-8000-000000000001")
        payload = verify_token(token)
        assert payload["sub"] == "3f2b9c1e-0000-4000-8000-000000000001"
        assert payload["type"] == "access"
        assert payload["iss"] == "nurnexus"

    def test_expiry_is_thirty_days(self):
        payload = verify_token(create_access_token("user-1"))
        assert payload["exp"] - payload["iat"] == 30 * 24 * 60 * 60
        assert token_max_age_seconds() == 30 * 24 * 60 * 60

    def test_expired_token_rejected(self):
        token = _encode(exp=datetime.now(timezone.utc) - timedelta(seconds=5))
        with pytest.raises(jwt.InvalidTokenError, match="Token has expired"):
            verify_token(token)

    def test_wrong_type_rejected(self):
        token = _encode(type="refresh")
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token)

    def test_missing_subject_rejected(self):
        token = _encode(sub=None)
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_wrong_issuer_rejected(self):
        token = _encode(iss="someone-else")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"sub": "user-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)}, "other")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not.a.jwt")
