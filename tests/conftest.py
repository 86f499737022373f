"""Shared pytest fixtures for the throttle test suite.

The limiter is driven by a fake millisecond clock so window expiry can be
tested without sleeping.
"""

from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import APIRouter, Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from throttle.config import Settings
from throttle.dependencies.rate_limit import RateLimit
from throttle.main import create_app
from throttle.services.rate_limiter import FixedWindowRateLimiter

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    def advance_seconds(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(clock=clock)


# ---------------------------------------------------------------------------
# Settings override
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        rate_limit_window_seconds=60,
        rate_limit_auth_send=3,
        rate_limit_admin_auth=3,
        rate_limit_location=10,
        rate_limit_events=10,
        rate_limit_community_events=20,
        rate_limit_create_event=5,
        rate_limit_sweep_interval_seconds=60.0,
        cors_origins=["http://localhost:3000"],
    )


# ---------------------------------------------------------------------------
# Application with stand-in guarded routes
# ---------------------------------------------------------------------------


def _guarded_routes() -> APIRouter:
    """Routes standing in for the hosting application's guarded handlers."""
    router = APIRouter()
    calls: list[str] = []

    @router.post("/api/auth/send")
    async def send_link() -> dict[str, bool]:
        calls.append("auth-send")
        return {"sent": True}

    @router.post("/api/admin/auth/send")
    async def send_admin_link() -> dict[str, bool]:
        calls.append("admin-auth")
        return {"sent": True}

    @router.post("/api/location")
    async def update_location() -> dict[str, str]:
        calls.append("location")
        return {"city": "Portland"}

    @router.post("/api/location/lookup", dependencies=[Depends(RateLimit("location"))])
    async def lookup_location() -> dict[str, str]:
        calls.append("lookup")
        return {"city": "Portland"}

    @router.get("/api/events")
    async def list_events() -> list[dict[str, str]]:
        return []

    @router.get("/api/events/community")
    async def list_community_events() -> list[dict[str, str]]:
        return []

    @router.post("/api/events/community", status_code=201)
    async def create_event() -> dict[str, str]:
        calls.append("create-event")
        return {"id": "evt_1"}

    @router.post("/api/profile/photos", dependencies=[Depends(RateLimit("create-event"))])
    async def upload_photo() -> dict[str, bool]:
        calls.append("upload")
        return {"ok": True}

    router.calls = calls  # type: ignore[attr-defined]
    return router


@pytest.fixture()
def app(settings: Settings, limiter: FixedWindowRateLimiter) -> FastAPI:
    application = create_app(settings=settings, limiter=limiter)
    routes = _guarded_routes()
    application.include_router(routes)
    application.state.handler_calls = routes.calls  # type: ignore[attr-defined]
    return application


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
