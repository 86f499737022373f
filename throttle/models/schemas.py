"""Pydantic response schemas for the service API."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    tracked_keys: int
    sweeper_running: bool
