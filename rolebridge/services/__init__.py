"""Stage controllers for the direct and interactive translation pipelines."""

from __future__ import annotations

from .analysis_service import AnalysisService, parse_analysis
from .direct_service import DirectService
from .synthesis_service import SynthesisService

__all__ = [
    "AnalysisService",
    "DirectService",
    "SynthesisService",
    "parse_analysis",
]
