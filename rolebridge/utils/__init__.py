"""
Utility modules for rolebridge.

This package provides common utilities, exceptions, constants, validators,
audit logging and logging configuration used throughout the application.
"""

from __future__ import annotations

from .audit_logger import (
    AuditEventType,
    AuditLogger,
    InMemoryAuditLogger,
    NullAuditLogger,
    get_audit_logger,
)
from .constants import (
    DEFAULT_LLM_MODEL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_REQUEST_TIMEOUT,
    MAX_CONTENT_LENGTH,
)
from .exceptions import (
    CancelledRequestError,
    ConfigurationError,
    LLMError,
    LLMTimeoutError,
    MalformedResponseError,
    ResponseNotJsonError,
    TranslatorError,
    UpstreamError,
    ValidationError,
)
from .logging_config import RequestIDFilter, get_logger, request_id_var, setup_logging

__all__ = [
    # Audit logging
    "AuditEventType",
    "AuditLogger",
    "InMemoryAuditLogger",
    "NullAuditLogger",
    "get_audit_logger",
    # Constants
    "DEFAULT_LLM_MODEL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_REQUEST_TIMEOUT",
    "MAX_CONTENT_LENGTH",
    # Exceptions
    "CancelledRequestError",
    "ConfigurationError",
    "LLMError",
    "LLMTimeoutError",
    "MalformedResponseError",
    "ResponseNotJsonError",
    "TranslatorError",
    "UpstreamError",
    "ValidationError",
    # Logging
    "RequestIDFilter",
    "get_logger",
    "request_id_var",
    "setup_logging",
]
