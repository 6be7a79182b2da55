"""Application state shared by the routers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Request

from rolebridge.llm.gateway import LLMGateway
from rolebridge.services.analysis_service import AnalysisService
from rolebridge.services.direct_service import DirectService
from rolebridge.services.synthesis_service import SynthesisService
from rolebridge.utils.audit_logger import AuditLogger, NullAuditLogger, get_audit_logger
from rolebridge.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class AppState:
    """Global application state container."""

    gateway: Optional[LLMGateway] = None
    audit: AuditLogger = NullAuditLogger()
    direct: Optional[DirectService] = None
    analysis: Optional[AnalysisService] = None
    synthesis: Optional[SynthesisService] = None

    def require(self, name: str) -> Any:
        """Return a stage service, or fail when the gateway was never built."""
        service = getattr(self, name)
        if service is None:
            raise ConfigurationError("LLM gateway is not initialized, check the .env file")
        return service

    async def close(self) -> None:
        if self.gateway is not None:
            await self.gateway.close()
            self.gateway = None


def build_state(cfg: Any, audit: Optional[AuditLogger] = None) -> AppState:
    """Wire the gateway and stage services from configuration.

    When the upstream settings are incomplete the state carries no services;
    requests then fail the configuration check with a 500.
    """
    state = AppState()
    state.audit = audit or get_audit_logger()

    if not cfg.is_llm_configured():
        logger.warning("LLM settings incomplete, translation endpoints will fail")
        return state

    state.gateway = LLMGateway.from_config(cfg, audit=state.audit)
    state.direct = DirectService(state.gateway)
    state.analysis = AnalysisService(state.gateway, state.audit)
    state.synthesis = SynthesisService(state.gateway, state.audit)
    logger.info(
        f"LLM gateway ready: model={cfg.get_llm_model()} "
        f"key={cfg.mask_sensitive(cfg.LLM_API_KEY)}"
    )
    return state


def get_app_state(request: Request) -> AppState:
    """FastAPI dependency returning the state built by the lifespan."""
    return request.app.state.translator
