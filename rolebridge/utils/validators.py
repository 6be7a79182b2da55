"""
Validation utilities for rolebridge.

Request payloads are checked here before any stream is opened, so a bad
request never reaches the LLM gateway.
"""

from __future__ import annotations

from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from rolebridge.models.translation import AnalysisResult, Answer, Direction

from .constants import MAX_CONTENT_LENGTH
from .exceptions import ValidationError


def validate_direction(value: Any) -> Direction:
    """
    Validate a translation direction.

    Args:
        value: Direction as sent by the client

    Returns:
        Direction member

    Raises:
        ValidationError: If value is not one of the two request spellings
    """
    try:
        return Direction(value)
    except ValueError:
        raise ValidationError(
            "Invalid translation direction, use pm-to-dev or dev-to-pm"
        ) from None


def validate_content(value: Any, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """
    Validate content to translate and return it trimmed.

    The length ceiling applies to the raw value, before trimming.

    Raises:
        ValidationError: If content is missing, blank or too long
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Please provide the content to translate")

    if len(value) > max_length:
        raise ValidationError(
            f"Content is too long, keep it within {max_length} characters"
        )

    return value.strip()


def validate_original_text(value: Any) -> str:
    """Validate the synthesis original text and return it trimmed."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Missing originalText parameter")
    return value.strip()


def validate_analysis_json(value: Any) -> AnalysisResult:
    """
    Validate the analysis result echoed back by the client.

    Raises:
        ValidationError: If it is missing or does not match the schema
    """
    if not value or not isinstance(value, dict):
        raise ValidationError("Missing analysisJson parameter")

    try:
        return AnalysisResult.model_validate(value)
    except PydanticValidationError as e:
        raise ValidationError(
            f"analysisJson does not match the analysis schema: {e.error_count()} error(s)"
        ) from e


def validate_answers(value: Any) -> List[Answer]:
    """
    Validate the user answers list.

    Raises:
        ValidationError: If answers is not an array of {id, answer} objects
    """
    if not isinstance(value, list):
        raise ValidationError("answers must be an array")

    try:
        return [Answer.model_validate(item) for item in value]
    except PydanticValidationError as e:
        raise ValidationError("Each answer must be an object with id and answer") from e


def validate_context(value: Any) -> str:
    """Validate optional supplementary context and return it trimmed."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("context must be a string")
    return value.strip()
