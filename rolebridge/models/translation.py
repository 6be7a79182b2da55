"""Models for translation pipeline data."""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Direction(str, Enum):
    """Translation direction, fixed for the lifetime of one request."""

    PM_TO_DEV = "pm-to-dev"
    DEV_TO_PM = "dev-to-pm"

    @property
    def schema_tag(self) -> str:
        """Value used for the ``direction`` field of an analysis result."""
        return self.name

    @property
    def source_role(self) -> str:
        return "产品经理" if self is Direction.PM_TO_DEV else "开发工程师"

    @classmethod
    def resolve(cls, value: str) -> "Direction":
        """Accept either the request spelling or the schema tag.

        Raises:
            ValueError: If the value names neither direction.
        """
        for member in cls:
            if value in (member.value, member.name):
                return member
        raise ValueError(f"Unknown translation direction: {value!r}")


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class StructuredData(BaseModel):
    """Core facts extracted from the input."""

    model_config = ConfigDict(frozen=True, extra="allow")

    logic_core: str
    constraints: List[str] = Field(default_factory=list)
    tech_context: List[str] = Field(default_factory=list)


class MissingInfo(BaseModel):
    """One information gap, with the assumption used when nobody answers it."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    priority: Priority
    question: str
    reason: str
    options: List[str] = Field(default_factory=list)
    default_assumption: str = Field(..., min_length=1)


class AnalysisResult(BaseModel):
    """Structured result of the analysis stage.

    Produced by one LLM call and never updated afterwards. Field names match
    the JSON keys the model is instructed to emit.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    direction: str
    intent: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    structured_data: StructuredData
    missing_info: List[MissingInfo] = Field(default_factory=list)
    can_proceed_directly: bool

    @field_validator("direction")
    @classmethod
    def _known_direction(cls, value: str) -> str:
        Direction.resolve(value)
        return value

    @field_validator("missing_info")
    @classmethod
    def _unique_ids(cls, value: List[MissingInfo]) -> List[MissingInfo]:
        ids = [item.id for item in value]
        if len(ids) != len(set(ids)):
            raise ValueError("missing_info ids must be unique")
        return value

    @property
    def translation_direction(self) -> Direction:
        return Direction.resolve(self.direction)

    @property
    def skips_clarification(self) -> bool:
        """True when synthesis can run without asking the user anything."""
        return self.can_proceed_directly or not self.missing_info


class Answer(BaseModel):
    """User answer to one missing_info question."""

    model_config = ConfigDict(frozen=True)

    id: str
    answer: str
