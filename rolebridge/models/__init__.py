"""Domain models for the translation pipeline."""

from __future__ import annotations

from .translation import (
    AnalysisResult,
    Answer,
    Direction,
    MissingInfo,
    Priority,
    StructuredData,
)

__all__ = [
    "AnalysisResult",
    "Answer",
    "Direction",
    "MissingInfo",
    "Priority",
    "StructuredData",
]
