"""
Authentication business logic.

Handles registration, email verification, the login guard (verified-before-
login, failed-attempt counting, lockout), Google sign-in reconciliation, and
password reset. Functions flush; routers commit. The exceptions are the
failing login paths, which must persist their side effects (rotated token,
incremented counter) before raising.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from nurnexus.auth.oauth import IdentityClaims
from nurnexus.auth.password import (
    check_needs_rehash,
    hash_password,
    unusable_password_hash,
    validate_password,
    verify_password,
)
from nurnexus.config import get_settings
from nurnexus.db.models import User
from nurnexus.errors import (
    AccountLockedError,
    ConflictError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from nurnexus.email.service import EmailService

logger = structlog.get_logger()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def normalize_email(email: str | None) -> str:
    return (email or "").lower().strip()


def _assert_has_credential(user: User) -> None:
    if not user.password_hash and not user.google_id:
        msg = "User must have either a password or a social login method"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == normalize_email(email)))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Mail links
# ---------------------------------------------------------------------------


def verification_url(token: str) -> str:
    return f"{get_settings().frontend_base_url}/verify-email?token={token}"


def reset_url(token: str) -> str:
    return f"{get_settings().frontend_base_url}/reset-password?token={token}"


async def send_verification_email(
    email_service: EmailService,
    email: str,
    token: str,
    *,
    template: str = "welcome",
    name: str | None = None,
) -> bool:
    """Send a verification link. Returns False if delivery failed."""
    context: dict[str, object] = {
        "verify_url": verification_url(token),
        "expires_hours": get_settings().email_verification_token_ttl_hours,
    }
    if template == "welcome":
        context["name"] = name
    return await email_service.send_template(to=email, template_name=template, context=context)


async def send_verification_email_quietly(
    email_service: EmailService,
    email: str,
    token: str,
    *,
    template: str = "welcome",
    name: str | None = None,
) -> None:
    """Fire-and-forget variant: delivery problems are logged, never raised."""
    try:
        sent = await send_verification_email(email_service, email, token, template=template, name=name)
    except Exception:
        logger.exception("verification_email_failed", email=email, template=template)
        return
    if not sent:
        logger.warning("verification_email_failed", email=email, template=template)


async def send_password_reset_email(email_service: EmailService, email: str, token: str) -> bool:
    """Send a password reset link. Returns False if delivery failed."""
    return await email_service.send_template(
        to=email,
        template_name="password_reset",
        context={
            "reset_url": reset_url(token),
            "expires_minutes": get_settings().password_reset_token_ttl_minutes,
        },
    )


# ---------------------------------------------------------------------------
# Registration and verification
# ---------------------------------------------------------------------------


async def register_email_user(
    db: AsyncSession,
    email: str | None,
    password: str | None,
    name: str | None = None,
) -> tuple[User, str]:
    """
    Register a new unverified user with email + password.

    Returns:
        Tuple of (user, raw verification token).

    Raises:
        ValidationError: If email or password is missing or the password is out of bounds.
        ConflictError: If the email is already registered.
    """
    email = normalize_email(email)
    if not email or not password:
        msg = "Please provide email and password"
        raise ValidationError(msg)
    validate_password(password)

    if await get_user_by_email(db, email) is not None:
        logger.info("registration_rejected", email=email, reason="exists")
        raise ConflictError

    settings = get_settings()
    token = _new_token()
    user = User(
        email=email,
        name=(name or "").strip() or None,
        password_hash=hash_password(password),
        is_verified=False,
        verification_token=token,
        verification_token_expiry=_now() + timedelta(hours=settings.email_verification_token_ttl_hours),
    )
    _assert_has_credential(user)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError from e
    logger.info("user_registered", user_id=user.id, email=email, method="email")
    return user, token


async def rotate_verification_token(db: AsyncSession, user: User) -> str:
    """Issue a fresh verification token, replacing any pending one."""
    settings = get_settings()
    token = _new_token()
    user.verification_token = token
    user.verification_token_expiry = _now() + timedelta(hours=settings.email_verification_token_ttl_hours)
    await db.flush()
    return token


async def verify_email_token(db: AsyncSession, token: str) -> User:
    """
    Mark the account owning ``token`` as verified and consume the token.

    Expiry is only enforced when ``verification_token_enforce_expiry`` is on.

    Raises:
        InvalidTokenError: If no pending verification matches.
    """
    if not token:
        raise InvalidTokenError

    conditions = [User.verification_token == token]
    if get_settings().verification_token_enforce_expiry:
        conditions.append(User.verification_token_expiry > _now())
    result = await db.execute(select(User).where(*conditions))
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidTokenError

    user.is_verified = True
    user.verification_token = None
    user.verification_token_expiry = None
    await db.flush()
    logger.info("email_verified", user_id=user.id)
    return user


async def prepare_verification_resend(db: AsyncSession, email: str | None) -> tuple[User, str] | None:
    """
    Rotate the verification token for an explicit resend request.

    Returns None for an unknown email unless ``reveal_unknown_emails`` is on.

    Raises:
        ValidationError: If the email is missing or already verified.
        NotFoundError: If the email is unknown and unknown emails are revealed.
    """
    email = normalize_email(email)
    if not email:
        msg = "Email is required"
        raise ValidationError(msg)

    user = await get_user_by_email(db, email)
    if user is None:
        if get_settings().reveal_unknown_emails:
            msg = "User not found"
            raise NotFoundError(msg)
        return None
    if user.is_verified:
        msg = "Email is already verified"
        raise ValidationError(msg)

    return user, await rotate_verification_token(db, user)


# ---------------------------------------------------------------------------
# Email auth: login
# ---------------------------------------------------------------------------


async def _record_failed_login(db: AsyncSession, user_id: str) -> tuple[int, bool]:
    """Atomically bump the failure counter and lock at the threshold."""
    threshold = get_settings().account_lockout_threshold
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            login_attempts=User.login_attempts + 1,
            account_locked=or_(User.account_locked, User.login_attempts + 1 >= threshold),
        )
        .returning(User.login_attempts, User.account_locked)
        .execution_options(synchronize_session=False)
    )
    attempts, locked = result.one()
    await db.commit()
    return int(attempts), bool(locked)


async def authenticate_email_user(
    db: AsyncSession,
    email_service: EmailService,
    email: str,
    password: str,
) -> User:
    """
    Authenticate a user with email + password.

    Order of checks: unknown email, lock, verification, password. An
    unverified account gets a new verification token and email on every
    attempt.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password.
        AccountLockedError: Account is locked.
        EmailNotVerifiedError: Account is not verified (and not linked to Google).
    """
    if not email or not password:
        msg = "Please provide email and password"
        raise ValidationError(msg)

    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("login_failed", email=normalize_email(email), reason="unknown_email")
        raise InvalidCredentialsError

    if user.account_locked:
        logger.info("login_failed", user_id=user.id, reason="locked")
        raise AccountLockedError

    if not user.is_verified and not user.google_id:
        token = await rotate_verification_token(db, user)
        await db.commit()
        logger.info("login_failed", user_id=user.id, reason="unverified")
        await send_verification_email_quietly(
            email_service, user.email, token, template="verify_email_reminder"
        )
        raise EmailNotVerifiedError

    if not verify_password(password, user.password_hash or ""):
        attempts, locked = await _record_failed_login(db, user.id)
        logger.info("login_failed", user_id=user.id, reason="bad_password", attempts=attempts)
        if locked:
            logger.warning("account_locked", user_id=user.id, attempts=attempts)
        raise InvalidCredentialsError

    user.login_attempts = 0
    user.last_login = _now()
    if user.password_hash and check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    await db.flush()
    logger.info("login_succeeded", user_id=user.id, method="email")
    return user


# ---------------------------------------------------------------------------
# Google sign-in
# ---------------------------------------------------------------------------


async def sign_in_with_identity(db: AsyncSession, claims: IdentityClaims) -> User:
    """
    Reconcile a verified Google identity with the local account.

    Existing accounts get the Google linkage backfilled and are upgraded to
    verified when Google vouches for the email; verification is never
    downgraded. New accounts are created with an unusable password. Lock
    and verification state never block this path.
    """
    email = normalize_email(claims.email)
    user = await get_user_by_email(db, email)
    if user is not None:
        if not user.google_id:
            user.google_id = claims.subject
            logger.info("google_linked", user_id=user.id)
        if claims.email_verified and not user.is_verified:
            user.is_verified = True
            logger.info("email_verified", user_id=user.id, via="google")
        await db.flush()
        return user

    user = User(
        email=email,
        name=claims.name or None,
        profile_picture=claims.picture,
        password_hash=unusable_password_hash(),
        google_id=claims.subject,
        is_verified=claims.email_verified,
    )
    _assert_has_credential(user)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Concurrent first sign-in for the same email created the row first.
        await db.rollback()
        existing = await get_user_by_email(db, email)
        if existing is None:
            raise
        return existing
    logger.info("user_registered", user_id=user.id, email=email, method="google")
    return user


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def request_password_reset(db: AsyncSession, email: str) -> tuple[User, str] | None:
    """
    Store a fresh reset token for the account, superseding any pending one.

    Returns None for an unknown email unless ``reveal_unknown_emails`` is on.

    Raises:
        NotFoundError: If the email is unknown and unknown emails are revealed.
    """
    settings = get_settings()
    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("password_reset_requested", email=normalize_email(email), known=False)
        if settings.reveal_unknown_emails:
            msg = "User not found"
            raise NotFoundError(msg)
        return None

    token = _new_token()
    user.reset_token = token
    user.reset_token_expiry = _now() + timedelta(minutes=settings.password_reset_token_ttl_minutes)
    await db.flush()
    logger.info("password_reset_requested", user_id=user.id, known=True)
    return user, token


async def reset_password(db: AsyncSession, token: str, new_password: str) -> User:
    """
    Set a new password using an unexpired reset token, consuming the token.

    Raises:
        ValidationError: If the new password violates the length policy.
        InvalidOrExpiredTokenError: If the token is unknown or expired.
    """
    validate_password(new_password)
    if not token:
        raise InvalidOrExpiredTokenError

    result = await db.execute(
        select(User).where(User.reset_token == token, User.reset_token_expiry > _now())
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidOrExpiredTokenError

    user.password_hash = hash_password(new_password)
    user.reset_token = None
    user.reset_token_expiry = None
    if get_settings().password_reset_unlocks_account:
        user.account_locked = False
        user.login_attempts = 0
    await db.flush()
    logger.info("password_reset_completed", user_id=user.id)
    return user
