"""Per-client fixed-window rate limiting for a FastAPI service."""

__version__ = "0.1.0"
