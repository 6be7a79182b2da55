"""
Global exception handling middleware.
"""

import logging
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rolebridge.utils.exceptions import (
    ConfigurationError,
    TranslatorError,
    ValidationError,
)
from rolebridge.utils.logging_config import request_id_var

from ..models.error import ErrorResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def setup_error_handlers(app: FastAPI):
    """
    Register global exception handlers.

    Handles errors raised before a stream is opened:
    - Request validation (ours and FastAPI's) -> 400
    - Missing upstream configuration -> 500
    - HTTP Exceptions (FastAPI/Starlette)
    - Unhandled Server Errors
    """

    @app.exception_handler(ValidationError)
    async def translator_validation_handler(request: Request, exc: ValidationError):
        """Handle rejected request payloads."""
        logger.info(f"Rejected request to {request.url.path}: {exc}")
        return _create_error_response(
            status_code=400,
            error="validation_error",
            message=str(exc),
            request_id=_request_id(request),
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        """Handle missing upstream LLM settings."""
        logger.error(f"Configuration error: {exc}")
        return _create_error_response(
            status_code=500,
            error="configuration_error",
            message=str(exc),
            request_id=_request_id(request),
        )

    @app.exception_handler(TranslatorError)
    async def translator_error_handler(request: Request, exc: TranslatorError):
        """Handle other application errors raised outside a stream."""
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
        return _create_error_response(
            status_code=500,
            error="translation_error",
            message=str(exc),
            request_id=_request_id(request),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle standard HTTP exceptions."""
        return _create_error_response(
            status_code=exc.status_code,
            error=str(exc.status_code),
            message=str(exc.detail),
            request_id=_request_id(request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle bodies that are not JSON objects."""
        return _create_error_response(
            status_code=400,
            error="validation_error",
            message="Request body must be a JSON object",
            details={"errors": _jsonable_errors(exc)},
            request_id=_request_id(request),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle catch-all unhandled exceptions."""
        error_id = uuid.uuid4().hex
        logger.error(f"Unhandled exception {error_id}: {exc}", exc_info=True)

        return _create_error_response(
            status_code=500,
            error="internal_server_error",
            message="An internal server error occurred.",
            details={"error_id": error_id},
            request_id=_request_id(request),
        )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def _jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def _create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict = None,
    request_id: str = None,
) -> JSONResponse:
    """Create standardized JSON error response."""
    content = ErrorResponse(
        error=error,
        message=message,
        details=details,
        request_id=request_id,
    ).model_dump(exclude_none=True)

    return JSONResponse(status_code=status_code, content=content)
