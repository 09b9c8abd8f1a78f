"""Tests for Google sign-in."""

from httpx import AsyncClient

from conftest import FakeIdentityVerifier, count_users, load_user, register, update_user
from nurnexus.auth.jwt import verify_token
from nurnexus.auth.password import verify_password


class TestGoogleSignIn:
    async def test_new_user_created_verified(self, client: AsyncClient, identity_verifier: FakeIdentityVerifier):
        identity_verifier.register(
            "good-token",
            subject="google-sub-1",
            email="Amina@Example.com",
            name="Amina",
            picture="https://example.com/amina.png",
        )
        response = await client.post("/api/auth/google", json={"idToken": "good-token"})
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "amina@example.com"
        assert data["user"]["name"] == "Amina"
        assert data["user"]["profilePicture"] == "https://example.com/amina.png"
        assert data["user"]["isVerified"] is True
        assert verify_token(data["token"])["sub"] == data["user"]["id"]

        user = await load_user("amina@example.com")
        assert user.google_id == "google-sub-1"
        assert user.password_hash
        assert await count_users("amina@example.com") == 1

    async def test_new_user_mirrors_unverified_flag(
        self, client: AsyncClient, identity_verifier: FakeIdentityVerifier
    ):
        identity_verifier.register("t", subject="google-sub-2", email="amina@example.com", email_verified=False)
        response = await client.post("/api/auth/google", json={"idToken": "t"})
        assert response.status_code == 200
        assert response.json()["user"]["isVerified"] is False

    async def test_repeat_sign_in_reuses_account(self, client: AsyncClient, identity_verifier: FakeIdentityVerifier):
        identity_verifier.register("t", subject="google-sub-1", email="amina@example.com")
        first = await client.post("/api/auth/google", json={"idToken": "t"})
        second = await client.post("/api/auth/google", json={"idToken": "t"})
        assert first.status_code == second.status_code == 200
        assert first.json()["user"]["id"] == second.json()["user"]["id"]
        assert await count_users("amina@example.com") == 1

    async def test_placeholder_password_unusable(self, client: AsyncClient, identity_verifier: FakeIdentityVerifier):
        identity_verifier.register("t", subject="google-sub-1", email="amina@example.com")
        await client.post("/api/auth/google", json={"idToken": "t"})

        user = await load_user("amina@example.com")
        for guess in ("", "password", "google-sub-1", "amina@example.com"):
            assert verify_password(guess, user.password_hash) is False

    async def test_links_existing_email_account(self, client: AsyncClient, identity_verifier: FakeIdentityVerifier):
        await register(client, "amina@example.com")
        identity_verifier.register("t", subject="google-sub-1", email="amina@example.com")

        response = await client.post("/api/auth/google", json={"idToken": "t"})
        assert response.status_code == 200
        assert response.json()["user"]["isVerified"] is True

        user = await load_user("amina@example.com")
        assert user.google_id == "google-sub-1"
        assert user.is_verified is True
        assert await count_users("amina@example.com") == 1

    async def test_existing_google_id_not_overwritten(
        self, client: AsyncClient, identity_verifier: FakeIdentityVerifier, verified_user: dict
    ):
        await update_user(verified_user["email"], google_id="original-sub")
        identity_verifier.register("t", subject="other-sub", email=verified_user["email"])
        await client.post("/api/auth/google", json={"idToken": "t"})
        assert (await load_user(verified_user["email"])).google_id == "original-sub"

    async def test_never_downgrades_verification(
        self, client: AsyncClient, identity_verifier: FakeIdentityVerifier, verified_user: dict
    ):
        identity_verifier.register("t", subject="google-sub-1", email=verified_user["email"], email_verified=False)
        response = await client.post("/api/auth/google", json={"idToken": "t"})
        assert response.status_code == 200
        assert (await load_user(verified_user["email"])).is_verified is True

    async def test_locked_account_can_still_sign_in(
        self, client: AsyncClient, identity_verifier: FakeIdentityVerifier, verified_user: dict
    ):
        await update_user(verified_user["email"], account_locked=True, login_attempts=5)
        identity_verifier.register("t", subject="google-sub-1", email=verified_user["email"])
        response = await client.post("/api/auth/google", json={"idToken": "t"})
        assert response.status_code == 200

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.post("/api/auth/google", json={"idToken": "forged"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Failed to verify Google token"

    async def test_missing_token(self, client: AsyncClient):
        response = await client.post("/api/auth/google", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "ID Token is required"
