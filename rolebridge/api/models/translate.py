"""Request bodies for the translation endpoints.

Fields are deliberately loose: the routers validate them with
rolebridge.utils.validators after the configuration check, so a bad value
yields a 400 with a readable message rather than a schema dump.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DirectRequest(BaseModel):
    """Body of POST /api/direct."""

    model_config = ConfigDict(extra="ignore")

    direction: Optional[Any] = Field(None, description="pm-to-dev or dev-to-pm")
    content: Optional[Any] = Field(None, description="Text to translate")


class AnalyzeRequest(DirectRequest):
    """Body of POST /api/interactive/analyze."""

    context: Optional[Any] = Field(None, description="Optional background")


class SynthesizeRequest(BaseModel):
    """Body of POST /api/interactive/synthesize."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    analysis_json: Optional[Any] = Field(
        None, alias="analysisJson", description="Result of the analysis stage"
    )
    answers: Optional[Any] = Field(None, description="List of {id, answer}")
    original_text: Optional[Any] = Field(
        None, alias="originalText", description="Text given to the analysis stage"
    )
    context: Optional[Any] = Field(None, description="Optional background")
