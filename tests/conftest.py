"""Shared test fixtures."""

from __future__ import annotations

import os

# Settings are read from the environment on first use; pin them before the
# application modules are imported.
os.environ.setdefault("NURNEXUS_ENVIRONMENT", "test")
os.environ.setdefault("NURNEXUS_REDIS_URL", "")
os.environ.setdefault("NURNEXUS_JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("NURNEXUS_EMAIL_PROVIDER", "console")
os.environ.setdefault("NURNEXUS_FRONTEND_BASE_URL", "http://frontend.test")
os.environ.setdefault("NURNEXUS_GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")

from collections.abc import AsyncGenerator, Callable  # noqa: E402
from contextlib import aclosing  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select, update  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from nurnexus.auth.oauth import IdentityClaims, get_identity_verifier  # noqa: E402
from nurnexus.config import get_settings  # noqa: E402
from nurnexus.database import close_db, create_schema, get_session, init_db  # noqa: E402
from nurnexus.db.models import User  # noqa: E402
from nurnexus.email.service import get_email_service  # noqa: E402
from nurnexus.errors import InvalidTokenError  # noqa: E402
from nurnexus.main import create_app  # noqa: E402

TEST_PASSWORD = "SecureP@ss1"


@dataclass
class SentEmail:
    to: str
    template_name: str
    context: dict[str, Any]

    @property
    def token(self) -> str:
        """The token embedded in the verify/reset link."""
        url = str(self.context.get("verify_url") or self.context.get("reset_url"))
        return url.split("token=", 1)[1]


@dataclass
class RecordingEmailService:
    """Stands in for EmailService; records every template send."""

    sent: list[SentEmail] = field(default_factory=list)
    succeed: bool = True

    async def send_template(self, to: str, template_name: str, context: dict[str, Any]) -> bool:
        self.sent.append(SentEmail(to=to, template_name=template_name, context=dict(context)))
        return self.succeed

    def to(self, email: str) -> list[SentEmail]:
        return [m for m in self.sent if m.to == email]

    def last_to(self, email: str) -> SentEmail:
        messages = self.to(email)
        assert messages, f"no email sent to {email}"
        return messages[-1]


class FakeIdentityVerifier:
    """Maps ID token strings to claims; anything else fails verification."""

    def __init__(self) -> None:
        self.tokens: dict[str, IdentityClaims] = {}

    def register(
        self,
        id_token: str,
        *,
        subject: str,
        email: str,
        email_verified: bool = True,
        name: str = "",
        picture: str = "",
    ) -> None:
        self.tokens[id_token] = IdentityClaims(
            subject=subject,
            email=email,
            email_verified=email_verified,
            name=name,
            picture=picture,
        )

    async def verify(self, id_token: str) -> IdentityClaims:
        claims = self.tokens.get(id_token)
        if claims is None:
            msg = "Failed to verify Google token"
            raise InvalidTokenError(msg, status_code=401)
        return claims


@pytest.fixture(autouse=True)
def _fresh_settings() -> Any:
    """Settings are cached; start and finish every test with a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def override_settings(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Set NURNEXUS_* variables for the current test."""

    def _apply(**values: Any) -> None:
        for key, value in values.items():
            monkeypatch.setenv(f"NURNEXUS_{key.upper()}", str(value))
        get_settings.cache_clear()

    return _apply


@pytest.fixture
def email_outbox() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def identity_verifier() -> FakeIdentityVerifier:
    return FakeIdentityVerifier()


@pytest_asyncio.fixture
async def app(
    tmp_path: Any,
    email_outbox: RecordingEmailService,
    identity_verifier: FakeIdentityVerifier,
) -> AsyncGenerator[FastAPI, None]:
    """Application wired to a throwaway SQLite database and fake collaborators."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await create_schema()

    application = create_app()
    application.dependency_overrides[get_email_service] = lambda: email_outbox
    application.dependency_overrides[get_identity_verifier] = lambda: identity_verifier
    yield application

    await close_db()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def load_user(email: str) -> User | None:
    """Read a user through a fresh session, bypassing the request's session."""
    async with aclosing(get_session()) as sessions:
        async for session in sessions:
            result = await session.execute(select(User).where(User.email == email.lower()))
            return result.scalar_one_or_none()
    return None


async def count_users(email: str) -> int:
    async with aclosing(get_session()) as sessions:
        async for session in sessions:
            result = await session.execute(
                select(func.count()).select_from(User).where(func.lower(User.email) == email.lower())
            )
            return int(result.scalar_one())
    return 0


async def update_user(email: str, **values: Any) -> None:
    async with aclosing(get_session()) as sessions:
        async for session in sessions:
            await session.execute(update(User).where(User.email == email.lower()).values(**values))
            await session.commit()
            break


async def register(
    client: AsyncClient,
    email: str = "donor@example.com",
    password: str = TEST_PASSWORD,
    name: str | None = "Test Donor",
) -> dict[str, Any]:
    body: dict[str, Any] = {"email": email, "password": password}
    if name is not None:
        body["name"] = name
    response = await client.post("/api/auth/register", json=body)
    assert response.status_code == 201, response.text
    return {"email": email, "password": password, "name": name}


async def register_verified(
    client: AsyncClient,
    outbox: RecordingEmailService,
    email: str = "donor@example.com",
    password: str = TEST_PASSWORD,
    name: str | None = "Test Donor",
) -> dict[str, Any]:
    """Register, follow the emailed verification link, return credentials and token."""
    user = await register(client, email, password, name)
    token = outbox.last_to(email).token
    response = await client.get(f"/api/auth/verify-email/{token}")
    assert response.status_code == 200, response.text
    data = response.json()
    user.update(id=data["id"], token=data["token"], headers={"Authorization": f"Bearer {data['token']}"})
    return user


@pytest_asyncio.fixture
async def verified_user(client: AsyncClient, email_outbox: RecordingEmailService) -> dict[str, Any]:
    """A registered and verified email user. Returns credentials and a bearer token."""
    return await register_verified(client, email_outbox)


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service-level tests."""
    async with aclosing(get_session()) as sessions:
        async for session in sessions:
            yield session
            break
