"""FastAPI application for the rolebridge translation service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from rolebridge import __version__
from rolebridge.utils.logging_config import setup_logging

from .config import config
from .middleware import setup_cors, setup_error_handlers
from .routers import health, translate
from .state import build_state

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the gateway and stage services, and close them on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    Path(config.LOG_PATH).mkdir(parents=True, exist_ok=True)
    app.state.translator = build_state(config)
    logger.info("rolebridge started")
    try:
        yield
    finally:
        await app.state.translator.close()
        logger.info("rolebridge shutdown complete")


def create_app() -> FastAPI:
    """Create the FastAPI application with middleware and routers."""
    setup_logging(level="DEBUG" if config.DEBUG else config.LOG_LEVEL)

    app = FastAPI(
        title="rolebridge",
        description="PM and developer translation over Server-Sent Events",
        version=__version__,
        lifespan=lifespan,
    )
    setup_cors(app)
    setup_error_handlers(app)

    app.include_router(health.router)
    app.include_router(translate.router)
    return app


app = create_app()
