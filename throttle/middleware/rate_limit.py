"""Starlette middleware that applies rate-limiting to selected routes."""

from __future__ import annotations

import logging
import math

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from throttle.services.client_ip import get_client_ip, make_key
from throttle.services.policies import DEFAULT_RULES, RateLimitRule, match_rule
from throttle.services.rate_limiter import (
    Decision,
    FixedWindowRateLimiter,
    RateLimitExceeded,
    RatePolicy,
)

logger = logging.getLogger(__name__)


def rate_limit_headers(limit: int, remaining: int, reset_at: int) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(math.ceil(reset_at / 1000)),
    }


def too_many_requests(exc: RateLimitExceeded) -> JSONResponse:
    """Build the 429 response for a denied request."""
    headers = {"Retry-After": str(exc.retry_after)}
    if exc.limit is not None and exc.reset_at is not None:
        headers.update(rate_limit_headers(exc.limit, 0, exc.reset_at))
    return JSONResponse(status_code=429, content={"detail": "Too many requests"}, headers=headers)


def check_request(
    request: Request,
    limiter: FixedWindowRateLimiter,
    operation: str,
    policy: RatePolicy,
) -> Decision:
    """Check *request* against *operation*'s policy.

    Raises ``RateLimitExceeded`` when the request must not proceed.
    """
    client_ip = get_client_ip(request.headers)
    decision = limiter.check(make_key(operation, client_ip), policy)
    if not decision.allowed:
        logger.info(
            "Rate limit exceeded for %s",
            operation,
            extra={
                "operation": operation,
                "client_ip": client_ip,
                "path": request.url.path,
                "method": request.method,
                "reset_at": decision.reset_at,
            },
        )
        raise RateLimitExceeded.from_decision(decision, policy.limit, limiter.now())
    return decision


def record_decision(request: Request, operation: str, decision: Decision) -> None:
    """Remember that *request* was already counted against *operation*."""
    decisions = getattr(request.state, "rate_limit_decisions", None)
    if decisions is None:
        decisions = request.state.rate_limit_decisions = {}
    decisions[operation] = decision


def recorded_decision(request: Request, operation: str) -> Decision | None:
    decisions = getattr(request.state, "rate_limit_decisions", None) or {}
    return decisions.get(operation)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply per-client rate limiting to the routes named by *rules*.

    The limiter and the operation -> policy table are read from
    ``app.state.rate_limiter`` and ``app.state.rate_limit_policies``.
    Admitted decisions are recorded on ``request.state`` so a route
    dependency for the same operation does not count the request again.
    """

    def __init__(self, app: ASGIApp, rules: tuple[RateLimitRule, ...] = DEFAULT_RULES) -> None:
        super().__init__(app)
        self.rules = rules

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rule = match_rule(self.rules, request.method, request.url.path)
        if rule is None:
            return await call_next(request)

        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        policy: RatePolicy = request.app.state.rate_limit_policies[rule.operation]

        try:
            decision = check_request(request, limiter, rule.operation, policy)
        except RateLimitExceeded as exc:
            return too_many_requests(exc)

        record_decision(request, rule.operation, decision)
        response = await call_next(request)
        response.headers.update(rate_limit_headers(policy.limit, decision.remaining, decision.reset_at))
        return response
