"""API routers for rolebridge."""

from __future__ import annotations

from . import health, translate

__all__ = ["health", "translate"]
