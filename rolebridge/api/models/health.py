"""Health and status models."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for health check endpoint.

    Reports which upstream settings are present without revealing them.
    """

    status: str
    timestamp: str
    api_key_configured: bool
    api_base_configured: bool
    model_configured: bool
