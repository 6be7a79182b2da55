"""Client side of the translation service."""

from __future__ import annotations

from .api_client import InteractiveOutcome, TranslationApiClient
from .stream_consumer import (
    CancellationToken,
    ConsumerState,
    StreamConsumer,
    StreamOutcome,
)

__all__ = [
    "CancellationToken",
    "ConsumerState",
    "InteractiveOutcome",
    "StreamConsumer",
    "StreamOutcome",
    "TranslationApiClient",
]
