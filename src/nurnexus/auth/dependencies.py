"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from nurnexus.auth.jwt import verify_token
from nurnexus.auth.service import get_user_by_id
from nurnexus.config import get_settings
from nurnexus.database import get_session
from nurnexus.db.models import User
from nurnexus.errors import AuthenticationRequired

_bearer = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Bearer header first, then the auth cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().auth_cookie_name)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the bearer token to a verified User.

    Raises 401 if the token is missing or invalid, the user no longer
    exists, or the email is not verified.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise AuthenticationRequired

    try:
        payload = verify_token(token)
    except jwt.InvalidTokenError as e:
        raise AuthenticationRequired from e

    user = await get_user_by_id(db, str(payload["sub"]))
    if user is None:
        msg = "User not found"
        raise AuthenticationRequired(msg)
    if not user.is_verified:
        msg = "Email not verified"
        raise AuthenticationRequired(msg)
    return user
