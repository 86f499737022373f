"""FastAPI application entry-point for the throttle service.

Composes the rate limiter, its background sweeper and the HTTP integration
(middleware, 429 handling, health endpoint) into one application.  The
hosting application mounts its guarded routers on the returned app.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from throttle import __version__
from throttle.config import Settings, get_settings
from throttle.logging_config import configure_logging, is_production
from throttle.middleware.rate_limit import RateLimitMiddleware, too_many_requests
from throttle.routers import health
from throttle.services.policies import DEFAULT_RULES, build_policies
from throttle.services.rate_limiter import FixedWindowRateLimiter, RateLimitExceeded
from throttle.services.sweeper import RateLimitSweeper

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the rate-limit sweeper on startup, stop it on shutdown."""
    configure_logging()
    _logger.info("Starting throttle service")

    sweeper: RateLimitSweeper = app.state.rate_limit_sweeper
    sweeper.start()
    try:
        yield
    finally:
        _logger.info("Shutting down throttle service")
        await sweeper.stop()


def create_app(
    settings: Settings | None = None,
    limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Raises ``ValueError`` when the configured limits are not positive.
    """
    if settings is None:
        settings = get_settings()
    if limiter is None:
        limiter = FixedWindowRateLimiter()

    application = FastAPI(
        title="Throttle",
        description="Per-client fixed-window rate limiting for authentication, location and event endpoints.",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.settings = settings
    application.state.rate_limiter = limiter
    application.state.rate_limit_policies = build_policies(settings)
    application.state.rate_limit_sweeper = RateLimitSweeper(
        limiter, interval_seconds=settings.rate_limit_sweep_interval_seconds
    )

    # -- Rate-limit middleware --------------------------------------------------
    if settings.rate_limit_enabled:
        application.add_middleware(RateLimitMiddleware, rules=DEFAULT_RULES)

    # -- CORS ------------------------------------------------------------------
    # Keep CORS as the outermost middleware so headers are present on 429s too.
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
        max_age=3600,
    )

    # -- Routers ---------------------------------------------------------------
    application.include_router(health.router)

    # -- Exception handlers ----------------------------------------------------
    @application.exception_handler(RateLimitExceeded)
    async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return too_many_requests(exc)

    @application.exception_handler(Exception)
    async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch unhandled exceptions and return a clean JSON error response."""
        _logger.exception(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

        if is_production():
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"},
            )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc),
                "type": type(exc).__name__,
            },
        )

    return application


app = create_app()
