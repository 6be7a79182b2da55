"""
Custom exception hierarchy for rolebridge.

This module defines all custom exceptions used throughout the application,
providing clear error categorization and better error handling.
"""

from __future__ import annotations

from typing import Optional


class TranslatorError(Exception):
    """Base exception for all rolebridge errors."""

    pass


class ConfigurationError(TranslatorError):
    """Raised when the upstream LLM configuration is invalid or missing."""

    pass


class ValidationError(TranslatorError):
    """Raised when a client request fails validation."""

    pass


class LLMError(TranslatorError):
    """Raised for LLM gateway errors."""

    pass


class UpstreamError(LLMError):
    """Raised when the LLM endpoint answers with a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMTimeoutError(UpstreamError):
    """Raised when the LLM endpoint sends no data within the configured bound."""

    pass


class MalformedResponseError(LLMError):
    """Raised when an LLM response body cannot be decoded."""

    pass


class ResponseNotJsonError(TranslatorError):
    """Raised when the analysis output violates its JSON contract."""

    pass


class CancelledRequestError(TranslatorError):
    """Raised when an in-flight request is cancelled."""

    pass
