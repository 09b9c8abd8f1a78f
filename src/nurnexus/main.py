"""FastAPI application factory."""

import asyncio
import os
import signal
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI

from nurnexus.auth.oauth import GoogleIdentityVerifier
from nurnexus.auth.router import router as auth_router
from nurnexus.config import get_settings
from nurnexus.database import close_db, create_schema, init_db
from nurnexus.email.service import create_email_service
from nurnexus.health.router import router as health_router
from nurnexus.middleware import setup_middleware
from nurnexus.redis_client import close_redis, get_redis_or_none, init_redis
from nurnexus.referral.router import router as referral_router

logger = structlog.get_logger()


def _fatal_exception_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """An exception nobody awaited is fatal: log it and ask the server to stop.

    Contexts without an exception (a pending task garbage collected, for
    instance) are only reported.
    """
    exc = context.get("exception")
    if exc is None:
        loop.default_exception_handler(context)
        return
    logger.critical(
        "fatal_exception",
        kind="unhandled_task_exception",
        message=context.get("message"),
        exc_info=exc,
    )
    loop.default_exception_handler(context)
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.database_auto_create:
        await create_schema()
    await init_redis(settings.redis_url)

    app.state.email_service = create_email_service(settings, redis=get_redis_or_none())
    app.state.identity_verifier = GoogleIdentityVerifier(settings.google_client_id)
    asyncio.get_running_loop().set_exception_handler(_fatal_exception_handler)

    logger.info(
        "startup",
        environment=settings.environment,
        version=settings.app_version,
        email_provider=settings.email_provider,
        google_sign_in=bool(settings.google_client_id),
        redis=bool(settings.redis_url),
    )

    yield

    await close_db()
    await close_redis()
    logger.info("shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="NurNexus API",
        description="Accounts, sign-in and referral points for the donation app",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(referral_router)

    return app


app = create_app()
