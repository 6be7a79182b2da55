"""
LLM access for rolebridge.

The gateway talks to an OpenAI-compatible endpoint; prompts holds the
per-direction, per-stage templates.
"""

from __future__ import annotations

from .gateway import LLMGateway
from .prompts import PROMPTS, PromptTemplate, Stage, get_template

__all__ = [
    "LLMGateway",
    "PROMPTS",
    "PromptTemplate",
    "Stage",
    "get_template",
]
