"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from nurnexus.auth.dependencies import get_current_user
from nurnexus.auth.jwt import create_access_token, token_max_age_seconds
from nurnexus.auth.oauth import IdentityVerifier, get_identity_verifier
from nurnexus.auth.schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    GoogleLoginRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    UserResponse,
    UserSummary,
    VerifyEmailResponse,
)
from nurnexus.auth.service import (
    authenticate_email_user,
    prepare_verification_resend,
    register_email_user,
    request_password_reset,
    reset_password,
    send_password_reset_email,
    send_verification_email,
    send_verification_email_quietly,
    sign_in_with_identity,
    verify_email_token,
)
from nurnexus.config import get_settings
from nurnexus.database import get_session
from nurnexus.db.models import User
from nurnexus.email.service import EmailService, get_email_service
from nurnexus.errors import EmailDeliveryError, ValidationError
from nurnexus.schemas import MessageResponse
from nurnexus.users.service import update_profile

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

_UNIFORM_RESET_MESSAGE = "If an account exists for that email, a password reset link has been sent."
_UNIFORM_RESEND_MESSAGE = "If an unverified account exists for that email, a verification email has been sent."


def _user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        email=user.email,
        name=user.name or "",
        profile_picture=user.profile_picture or "",
        is_verified=user.is_verified,
    )


def user_response(user: User) -> UserResponse:
    """Build the public UserResponse from a User model."""
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name or "",
        profile_picture=user.profile_picture or "",
        is_verified=user.is_verified,
        google_id=user.google_id,
        account_locked=user.account_locked,
        referral_code=user.referral_code,
        referred_by=user.referred_by,
        sawab_points=user.sawab_points,
        referral_count=user.referral_count,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _issue_token(user: User, response: Response) -> str:
    """Sign a bearer token and mirror it into the httpOnly auth cookie."""
    settings = get_settings()
    token = create_access_token(user.id)
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        max_age=token_max_age_seconds(),
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
    )
    return token


# ---------------------------------------------------------------------------
# Registration and verification
# ---------------------------------------------------------------------------


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    """Register with email + password. The account starts unverified."""
    user, token = await register_email_user(db, body.email, body.password, body.name)
    await db.commit()

    background_tasks.add_task(
        send_verification_email_quietly,
        email_service,
        user.email,
        token,
        template="welcome",
        name=user.name,
    )
    return MessageResponse(
        message="User registered successfully. Please check your email to verify your account."
    )


@router.get("/verify-email/{token}", response_model=VerifyEmailResponse)
async def verify_email_endpoint(
    token: str,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> VerifyEmailResponse:
    """Verify email address with token and log the user in."""
    user = await verify_email_token(db, token)
    await db.commit()
    return VerifyEmailResponse(
        message="Email verified successfully",
        token=_issue_token(user, response),
        id=user.id,
        email=user.email,
        name=user.name or "",
        is_verified=user.is_verified,
    )


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    body: ResendVerificationRequest,
    db: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    """Send a fresh verification email. Delivery failures are reported."""
    prepared = await prepare_verification_resend(db, body.email)
    if prepared is None:
        return MessageResponse(message=_UNIFORM_RESEND_MESSAGE)

    user, token = prepared
    await db.commit()
    if not await send_verification_email(email_service, user.email, token, template="verify_email"):
        msg = "Failed to send verification email"
        raise EmailDeliveryError(msg)
    return MessageResponse(message="Verification email sent successfully")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
) -> AuthResponse:
    """Login with email + password."""
    user = await authenticate_email_user(db, email_service, body.email, body.password)
    await db.commit()
    return AuthResponse(token=_issue_token(user, response), user=_user_summary(user))


@router.post("/google", response_model=AuthResponse)
async def google_login(
    body: GoogleLoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> AuthResponse:
    """Sign in with a Google ID token, creating the account on first use."""
    if not body.id_token:
        msg = "ID Token is required"
        raise ValidationError(msg)

    claims = await verifier.verify(body.id_token)
    user = await sign_in_with_identity(db, claims)
    await db.commit()
    return AuthResponse(token=_issue_token(user, response), user=_user_summary(user))


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    """Request a password reset email."""
    prepared = await request_password_reset(db, body.email)
    if prepared is None:
        return MessageResponse(message=_UNIFORM_RESET_MESSAGE)

    user, token = prepared
    await db.commit()
    if not await send_password_reset_email(email_service, user.email, token):
        msg = "Failed to send password reset email"
        raise EmailDeliveryError(msg)

    if get_settings().reveal_unknown_emails:
        return MessageResponse(message="Password reset email sent")
    return MessageResponse(message=_UNIFORM_RESET_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Reset password with a valid, unexpired token."""
    await reset_password(db, body.token, body.password)
    await db.commit()
    return MessageResponse(message="Password reset successful")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Get own profile."""
    return user_response(user)


@router.put("/profile", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update own name and/or profile picture."""
    user = await update_profile(db, user, name=body.name, profile_picture=body.profile_picture)
    await db.commit()
    return user_response(user)
