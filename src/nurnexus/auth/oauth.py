"""
Google ID token verification.

The verifier checks signature, expiry and audience through google-auth and
hands back the identity claims the sign-in flow needs. It is resolved per
application through ``get_identity_verifier`` so tests can replace it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.id_token
import requests
import structlog
from fastapi import Request

from nurnexus.config import get_settings
from nurnexus.errors import InvalidTokenError

logger = structlog.get_logger()


@dataclass(frozen=True)
class IdentityClaims:
    """Verified identity asserted by the upstream provider."""

    subject: str
    email: str
    email_verified: bool
    name: str = ""
    picture: str = ""


class IdentityVerifier(Protocol):
    async def verify(self, id_token: str) -> IdentityClaims: ...


def claims_from_idinfo(idinfo: dict[str, Any]) -> IdentityClaims:
    """Extract claims from a decoded Google ID token payload."""
    email = idinfo.get("email")
    subject = idinfo.get("sub")
    if not email or not subject:
        msg = "Google token is missing the email or subject claim"
        raise InvalidTokenError(msg, status_code=401)
    return IdentityClaims(
        subject=str(subject),
        email=str(email).lower().strip(),
        email_verified=idinfo.get("email_verified") in (True, "true"),
        name=idinfo.get("name") or "",
        picture=idinfo.get("picture") or "",
    )


class GoogleIdentityVerifier:
    """Verify Google-issued ID tokens for a configured OAuth client id."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        self._session = requests.Session()

    def _verify_sync(self, id_token: str) -> dict[str, Any]:
        request = google.auth.transport.requests.Request(session=self._session)
        return google.oauth2.id_token.verify_oauth2_token(id_token, request, self.client_id)

    async def verify(self, id_token: str) -> IdentityClaims:
        """
        Verify the token and return its claims.

        Raises:
            InvalidTokenError: On any verification failure (expired, wrong
                audience, malformed, certificate fetch failure).
        """
        if not self.client_id:
            msg = "Google sign-in is not configured"
            raise InvalidTokenError(msg, status_code=401)
        try:
            idinfo = await asyncio.to_thread(self._verify_sync, id_token)
        except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
            logger.warning("google_token_rejected", error=str(e))
            msg = "Failed to verify Google token"
            raise InvalidTokenError(msg, status_code=401) from e
        if not idinfo:
            msg = "Invalid Google token"
            raise InvalidTokenError(msg, status_code=401)
        return claims_from_idinfo(idinfo)


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """FastAPI dependency: the application's Google token verifier."""
    verifier: IdentityVerifier | None = getattr(request.app.state, "identity_verifier", None)
    if verifier is None:
        verifier = GoogleIdentityVerifier(get_settings().google_client_id)
        request.app.state.identity_verifier = verifier
    return verifier
