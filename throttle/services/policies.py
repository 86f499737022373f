"""Named operation policies and the path rules that apply them."""

from __future__ import annotations

from dataclasses import dataclass

from throttle.config import Settings
from throttle.services.rate_limiter import RatePolicy

# Operation tags.  Each guarded operation gets its own tag so quotas never
# share a counter.
AUTH_SEND = "auth-send"
ADMIN_AUTH = "admin-auth"
LOCATION = "location"
EVENTS = "events"
COMMUNITY_EVENTS = "community-events"
CREATE_EVENT = "create-event"


@dataclass(frozen=True)
class RateLimitRule:
    """Apply *operation*'s policy to requests under *path_prefix*."""

    operation: str
    path_prefix: str
    methods: frozenset[str]

    def matches(self, method: str, path: str) -> bool:
        if method.upper() not in self.methods:
            return False
        prefix = self.path_prefix.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")


def build_policies(settings: Settings) -> dict[str, RatePolicy]:
    """Build the operation -> policy table.  Raises ``ValueError`` on bad values."""
    window = settings.rate_limit_window_seconds
    return {
        AUTH_SEND: RatePolicy(limit=settings.rate_limit_auth_send, window_seconds=window),
        ADMIN_AUTH: RatePolicy(limit=settings.rate_limit_admin_auth, window_seconds=window),
        LOCATION: RatePolicy(limit=settings.rate_limit_location, window_seconds=window),
        EVENTS: RatePolicy(limit=settings.rate_limit_events, window_seconds=window),
        COMMUNITY_EVENTS: RatePolicy(limit=settings.rate_limit_community_events, window_seconds=window),
        CREATE_EVENT: RatePolicy(limit=settings.rate_limit_create_event, window_seconds=window),
    }


# More specific prefixes come first; the first matching rule wins.
DEFAULT_RULES: tuple[RateLimitRule, ...] = (
    RateLimitRule(ADMIN_AUTH, "/api/admin/auth/send", frozenset({"POST"})),
    RateLimitRule(AUTH_SEND, "/api/auth/send", frozenset({"POST"})),
    RateLimitRule(LOCATION, "/api/location", frozenset({"POST"})),
    RateLimitRule(CREATE_EVENT, "/api/events/community", frozenset({"POST"})),
    RateLimitRule(COMMUNITY_EVENTS, "/api/events/community", frozenset({"GET"})),
    RateLimitRule(EVENTS, "/api/events", frozenset({"GET"})),
)


def match_rule(rules: tuple[RateLimitRule, ...], method: str, path: str) -> RateLimitRule | None:
    for rule in rules:
        if rule.matches(method, path):
            return rule
    return None
