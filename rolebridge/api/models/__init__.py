"""API request and response models."""

from __future__ import annotations

from .error import ErrorResponse
from .health import HealthResponse
from .translate import AnalyzeRequest, DirectRequest, SynthesizeRequest

__all__ = [
    "AnalyzeRequest",
    "DirectRequest",
    "ErrorResponse",
    "HealthResponse",
    "SynthesizeRequest",
]
