"""Health, readiness, version and endpoint index."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from nurnexus.config import get_settings
from nurnexus.database import get_session
from nurnexus.redis_client import get_redis_or_none

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {
        "status": "ok",
        "environment": get_settings().environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: checks DB and (when configured) Redis connectivity."""
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    redis = get_redis_or_none()
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/api")
async def api_index() -> dict[str, object]:
    """Human-readable map of the public endpoints."""
    return {
        "message": "Welcome to the Donation API",
        "version": get_settings().app_version,
        "endpoints": {
            "auth": {
                "register": "POST /api/auth/register",
                "login": "POST /api/auth/login",
                "googleAuth": "POST /api/auth/google",
                "verifyEmail": "GET /api/auth/verify-email/:token",
                "resendVerification": "POST /api/auth/resend-verification",
                "forgotPassword": "POST /api/auth/forgot-password",
                "resetPassword": "POST /api/auth/reset-password",
                "getCurrentUser": "GET /api/auth/me",
                "updateProfile": "PUT /api/auth/profile",
            },
            "referral": {
                "getReferralInfo": "GET /api/referral",
                "applyReferralCode": "POST /api/referral/apply",
                "shareReferralLink": "POST /api/referral/share",
                "getSawabPoints": "GET /api/referral/points",
            },
        },
    }
