"""FastAPI dependencies for route-level rate limiting."""

from __future__ import annotations

from fastapi import Request

from throttle.middleware.rate_limit import check_request, record_decision, recorded_decision
from throttle.services.rate_limiter import Decision, FixedWindowRateLimiter, RatePolicy


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.rate_limiter


class RateLimit:
    """Dependency that guards a route with the policy of *operation*.

    Usage::

        @router.post("/location", dependencies=[Depends(RateLimit("location"))])

    A request the middleware already counted for *operation* is not counted
    again; the recorded decision is returned instead.  Denied requests raise
    ``RateLimitExceeded``, which the application turns into a 429 response
    before the route body runs.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation

    # Sync on purpose: FastAPI runs it on the threadpool, which is why the
    # limiter serializes checks with a lock.
    def __call__(self, request: Request) -> Decision:
        decision = recorded_decision(request, self.operation)
        if decision is not None:
            return decision

        policies: dict[str, RatePolicy] = request.app.state.rate_limit_policies
        policy = policies[self.operation]
        decision = check_request(request, get_rate_limiter(request), self.operation, policy)
        record_decision(request, self.operation, decision)
        return decision
