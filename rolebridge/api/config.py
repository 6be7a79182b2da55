"""API configuration loaded from the environment."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from rolebridge.utils.constants import (
    AUDIT_RETENTION_DAYS,
    DEFAULT_LLM_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    MAX_CONTENT_LENGTH,
)
from rolebridge.utils.exceptions import ConfigurationError

load_dotenv()

# Configure logger for configuration validation
logger = logging.getLogger(__name__)


class TranslatorConfig:
    """Translator service configuration.

    Manages environment-based configuration for:
    - Upstream LLM endpoint (credential, base URL, model, limits)
    - Request validation limits
    - Logging and audit trail storage
    - HTTP server and CORS
    """

    # Upstream LLM (OpenAI-compatible chat completions)
    LLM_API_KEY = os.getenv("LLM_API_KEY", "")
    LLM_API_BASE_URL = os.getenv("LLM_API_BASE_URL", "")
    LLM_MODEL = os.getenv("LLM_MODEL", "")
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", str(DEFAULT_MAX_TOKENS)))
    # Bound on waiting for upstream data, applied per read
    LLM_TIMEOUT_SECONDS = float(
        os.getenv("LLM_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT))
    )

    # Request validation
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(MAX_CONTENT_LENGTH)))

    # Logging
    LOG_PATH = os.getenv("LOG_PATH", "./logs")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"
    AUDIT_RETENTION_DAYS = int(
        os.getenv("AUDIT_RETENTION_DAYS", str(AUDIT_RETENTION_DAYS))
    )

    # HTTP server
    HOST = os.getenv("HOST", "127.0.0.1")
    PORT = int(os.getenv("PORT", str(DEFAULT_PORT)))
    ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    @classmethod
    def validate_llm_config(cls) -> None:
        """Check that the upstream LLM settings are present.

        Raises:
            ConfigurationError: Naming the first missing setting.
        """
        for name in ("LLM_API_KEY", "LLM_API_BASE_URL", "LLM_MODEL"):
            if not getattr(cls, name):
                raise ConfigurationError(
                    f"Server is missing {name}, check the .env file"
                )

    @classmethod
    def is_llm_configured(cls) -> bool:
        try:
            cls.validate_llm_config()
        except ConfigurationError:
            return False
        return True

    @classmethod
    def get_llm_model(cls) -> str:
        """Return the configured model, or the default when unset."""
        return cls.LLM_MODEL or DEFAULT_LLM_MODEL

    @staticmethod
    def mask_sensitive(value: str, visible_chars: int = 4) -> str:
        """Mask sensitive configuration values for logging.

        Args:
            value: The sensitive value to mask
            visible_chars: Number of characters to show at the end

        Returns:
            Masked string like "***xyz" or "***" if value is too short
        """
        if not value or len(value) <= visible_chars:
            return "***"
        return "*" * (len(value) - visible_chars) + value[-visible_chars:]


config = TranslatorConfig()
