"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nurnexus.config import Settings


def allowed_origins(settings: Settings) -> list[str]:
    """Configured origins plus the frontend the emails link to."""
    origins = list(settings.cors_origins)
    if settings.frontend_base_url and settings.frontend_base_url not in origins:
        origins.append(settings.frontend_base_url)
    return origins


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow credentialed requests from the web frontends."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept", "X-Request-Id"],
        expose_headers=["Set-Cookie", "X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
