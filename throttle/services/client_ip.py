"""Client identification and rate-limit key construction."""

from __future__ import annotations

from typing import Mapping

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Best-effort client address from reverse-proxy headers.

    Prefers the first entry of ``X-Forwarded-For``, then ``X-Real-IP``.
    Requests carrying neither share the ``"unknown"`` identifier, and so one
    bucket per operation.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT


def make_key(operation: str, identifier: str) -> str:
    """Compose the ``"<operation>:<client-identifier>"`` key for a check."""
    if not operation:
        raise ValueError("operation tag must be non-empty")
    return f"{operation}:{identifier}"
