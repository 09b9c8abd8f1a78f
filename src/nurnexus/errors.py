"""
Domain error taxonomy.

Services raise these; ``middleware.error_handler`` renders them as
``{"detail": ...}`` JSON with the carried status code.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_detail: str = "Server error"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 400
    default_detail = "Invalid request"


class ConflictError(AppError):
    status_code = 409
    default_detail = "User already exists"


class InvalidCredentialsError(AppError):
    """Same message for unknown email and wrong password."""

    status_code = 400
    default_detail = "Invalid credentials"


class EmailNotVerifiedError(AppError):
    status_code = 401
    default_detail = "Please verify your email before logging in. A new verification email has been sent."


class AccountLockedError(AppError):
    status_code = 401
    default_detail = (
        "Your account has been locked due to too many failed login attempts. "
        "Please reset your password or contact support."
    )


class InvalidTokenError(AppError):
    status_code = 400
    default_detail = "Invalid verification token"


class InvalidOrExpiredTokenError(AppError):
    status_code = 400
    default_detail = "Invalid or expired reset token"


class AuthenticationRequired(AppError):
    status_code = 401
    default_detail = "Not authorized to access this route"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class SelfReferralError(AppError):
    status_code = 400
    default_detail = "You cannot refer yourself"


class AlreadyReferredError(AppError):
    status_code = 400
    default_detail = "You have already used a referral code"


class CodeGenerationExhausted(AppError):
    status_code = 500
    default_detail = "Could not generate a unique referral code"


class EmailDeliveryError(AppError):
    status_code = 500
    default_detail = "Failed to send email"
