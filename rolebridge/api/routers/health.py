"""Health endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from ..config import config
from ..models.health import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report liveness and which upstream settings are present."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        api_key_configured=bool(config.LLM_API_KEY),
        api_base_configured=bool(config.LLM_API_BASE_URL),
        model_configured=bool(config.LLM_MODEL),
    )
