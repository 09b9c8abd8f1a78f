"""Middleware registration."""

from fastapi import FastAPI
from starlette.middleware.gzip import GZipMiddleware

from nurnexus.config import Settings
from nurnexus.middleware.cors import setup_cors
from nurnexus.middleware.error_handler import setup_error_handlers
from nurnexus.middleware.logging import setup_logging
from nurnexus.middleware.rate_limit import RateLimitMiddleware
from nurnexus.middleware.request_id import RequestIdMiddleware
from nurnexus.middleware.security import SecurityMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS (added last) is
    outermost and also decorates 429 and 413 responses. Oversized bodies
    are refused before they count against the rate limit.
    """
    setup_logging(settings)
    setup_error_handlers(app, settings)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(
        SecurityMiddleware,
        max_body_bytes=settings.max_request_body_bytes,
        hsts_max_age=settings.hsts_max_age_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    setup_cors(app, settings)
