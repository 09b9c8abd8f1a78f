"""Tests for email registration."""

from httpx import AsyncClient

from conftest import TEST_PASSWORD, RecordingEmailService, count_users, load_user, register
from nurnexus.auth.password import verify_password


class TestRegistration:
    async def test_register_success(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={
            "name": "Amina",
            "email": "amina@example.com",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 201
        data = response.json()
        assert "verify" in data["message"].lower()
        # Nothing sensitive in the acknowledgment
        assert "token" not in data
        assert "password" not in data

    async def test_register_creates_unverified_user(self, client: AsyncClient):
        await register(client, "amina@example.com", name="Amina")
        user = await load_user("amina@example.com")
        assert user is not None
        assert user.is_verified is False
        assert user.name == "Amina"
        assert user.verification_token is not None
        assert len(user.verification_token) == 64
        assert user.verification_token_expiry is not None
        assert user.login_attempts == 0
        assert user.account_locked is False
        assert user.sawab_points == 0

    async def test_register_blank_name_stored_as_none(self, client: AsyncClient):
        await register(client, "amina@example.com", name="   ")
        user = await load_user("amina@example.com")
        assert user.name is None

    async def test_register_name_trimmed(self, client: AsyncClient):
        await register(client, "amina@example.com", name="  Amina  ")
        assert (await load_user("amina@example.com")).name == "Amina"

    async def test_register_hashes_password(self, client: AsyncClient):
        await register(client, "amina@example.com")
        user = await load_user("amina@example.com")
        assert user.password_hash != TEST_PASSWORD
        assert user.password_hash.startswith("$argon2id$")
        assert verify_password(TEST_PASSWORD, user.password_hash)

    async def test_register_sends_welcome_email(self, client: AsyncClient, email_outbox: RecordingEmailService):
        await register(client, "amina@example.com", name="Amina")
        user = await load_user("amina@example.com")

        mail = email_outbox.last_to("amina@example.com")
        assert mail.template_name == "welcome"
        assert mail.context["name"] == "Amina"
        assert mail.context["verify_url"] == f"http://frontend.test/verify-email?token={user.verification_token}"

    async def test_register_survives_email_failure(self, client: AsyncClient, email_outbox: RecordingEmailService):
        email_outbox.succeed = False
        response = await client.post("/api/auth/register", json={
            "email": "amina@example.com",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 201
        assert await load_user("amina@example.com") is not None

    async def test_register_duplicate_email(self, client: AsyncClient):
        await register(client, "amina@example.com")
        response = await client.post("/api/auth/register", json={
            "email": "amina@example.com",
            "password": "AnotherP@ss2",
        })
        assert response.status_code == 409
        assert response.json()["detail"] == "User already exists"
        assert await count_users("amina@example.com") == 1

    async def test_register_duplicate_email_case_insensitive(self, client: AsyncClient):
        await register(client, "amina@example.com")
        response = await client.post("/api/auth/register", json={
            "email": "AMINA@Example.com",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 409
        assert await count_users("amina@example.com") == 1

    async def test_register_normalizes_email(self, client: AsyncClient):
        await register(client, "Mixed.Case@Example.COM")
        user = await load_user("mixed.case@example.com")
        assert user is not None
        assert user.email == "mixed.case@example.com"

    async def test_register_missing_password(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={"email": "amina@example.com"})
        assert response.status_code == 400

    async def test_register_missing_email(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={"password": TEST_PASSWORD})
        assert response.status_code == 400

    async def test_register_blank_password(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={
            "email": "amina@example.com",
            "password": "",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Please provide email and password"

    async def test_register_short_password(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={
            "email": "amina@example.com",
            "password": "short",
        })
        assert response.status_code == 400
        assert "at least 8" in response.json()["detail"]
        assert await load_user("amina@example.com") is None

    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={
            "email": "not-an-email",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation error"
