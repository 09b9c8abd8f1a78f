"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from nurnexus.schemas import CamelModel


def _normalize_email(v: str | None) -> str | None:
    return v.lower().strip() if v else v


# ---------------------------------------------------------------------------
# Email auth
# ---------------------------------------------------------------------------


class RegisterRequest(CamelModel):
    """Email registration request."""

    name: str | None = Field(None, max_length=128)
    email: EmailStr
    password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return _normalize_email(v) or v


class LoginRequest(CamelModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return _normalize_email(v) or v


class GoogleLoginRequest(CamelModel):
    """Sign in with a Google ID token."""

    id_token: str | None = None


class ForgotPasswordRequest(CamelModel):
    """Request a password reset email."""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return _normalize_email(v) or v


class ResetPasswordRequest(CamelModel):
    """Reset password with a valid token."""

    token: str
    password: str = Field(..., max_length=128)


class ResendVerificationRequest(CamelModel):
    """Ask for another verification email."""

    email: EmailStr | None = None


class ProfileUpdateRequest(CamelModel):
    """Partial profile update."""

    name: str | None = Field(None, max_length=128)
    profile_picture: str | None = Field(None, max_length=2048)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserSummary(CamelModel):
    """Minimal profile returned alongside a token."""

    id: str
    email: str
    name: str = ""
    profile_picture: str = ""
    is_verified: bool = False


class AuthResponse(CamelModel):
    """Bearer token plus minimal profile."""

    token: str
    user: UserSummary


class VerifyEmailResponse(CamelModel):
    """Verification auto-logs the user in."""

    message: str
    token: str
    id: str
    email: str
    name: str = ""
    is_verified: bool


class UserResponse(CamelModel):
    """Full public user profile. Secrets and counters are never included."""

    id: str
    email: str
    name: str = ""
    profile_picture: str = ""
    is_verified: bool = False
    google_id: str | None = None
    account_locked: bool = False
    referral_code: str | None = None
    referred_by: str | None = None
    sawab_points: int = 0
    referral_count: int = 0
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
