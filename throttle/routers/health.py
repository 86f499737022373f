"""Health-check endpoint for load balancers and monitoring."""

from __future__ import annotations

from fastapi import APIRouter, Request

from throttle import __version__
from throttle.models.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check(request: Request) -> HealthResponse:
    """Return service health along with the number of tracked rate-limit keys."""
    state = request.app.state
    return HealthResponse(
        status="ok",
        version=__version__,
        tracked_keys=len(state.rate_limiter),
        sweeper_running=state.rate_limit_sweeper.running,
    )
