"""
Application constants for rolebridge.

This module contains all magic numbers, default values, and configuration
constants used throughout the application.
"""

from __future__ import annotations

# Model configuration
DEFAULT_LLM_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 4000

# API configuration
DEFAULT_REQUEST_TIMEOUT = 120  # seconds
DEFAULT_PORT = 3000

# Validation limits
MAX_CONTENT_LENGTH = 10000  # characters

# Analysis contract
LOW_CONFIDENCE_THRESHOLD = 0.7

# SSE event names
SSE_EVENT_CONNECTED = "connected"
SSE_EVENT_DONE = "done"
SSE_EVENT_ERROR = "error"

# Logging configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s"
AUDIT_RETENTION_DAYS = 30
