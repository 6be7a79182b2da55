"""Tests for request validators."""

import pytest

from rolebridge.models.translation import Direction
from rolebridge.utils.exceptions import ValidationError
from rolebridge.utils.validators import (
    validate_analysis_json,
    validate_answers,
    validate_content,
    validate_context,
    validate_direction,
    validate_original_text,
)


def test_validate_direction():
    assert validate_direction("pm-to-dev") is Direction.PM_TO_DEV
    assert validate_direction("dev-to-pm") is Direction.DEV_TO_PM
    for bad in ("PM_TO_DEV", "pm", None, 1):
        with pytest.raises(ValidationError):
            validate_direction(bad)


def test_validate_content_trims_and_limits():
    assert validate_content("  需求  ") == "需求"
    assert validate_content("a" * 5, max_length=5) == "a" * 5
    with pytest.raises(ValidationError):
        validate_content("a" * 6, max_length=5)
    with pytest.raises(ValidationError):
        validate_content(" aaaa ", max_length=5)


def test_validate_content_counts_characters_not_bytes():
    assert validate_content("需" * 10, max_length=10) == "需" * 10


@pytest.mark.parametrize("value", ["", "  ", None, ["x"]])
def test_validate_content_rejects_blank(value):
    with pytest.raises(ValidationError):
        validate_content(value)


def test_validate_original_text():
    assert validate_original_text(" x ") == "x"
    with pytest.raises(ValidationError, match="originalText"):
        validate_original_text("")


def test_validate_analysis_json(analysis_dict):
    assert validate_analysis_json(analysis_dict).intent == "一键导出报表"
    with pytest.raises(ValidationError, match="Missing"):
        validate_analysis_json(None)
    with pytest.raises(ValidationError, match="schema"):
        validate_analysis_json({"direction": "PM_TO_DEV"})


def test_validate_answers():
    answers = validate_answers([{"id": "q1", "answer": "T+0"}])
    assert answers[0].answer == "T+0"
    assert validate_answers([]) == []
    with pytest.raises(ValidationError, match="array"):
        validate_answers({"id": "q1"})
    with pytest.raises(ValidationError):
        validate_answers([{"answer": "x"}])


def test_validate_context():
    assert validate_context(None) == ""
    assert validate_context(" 背景 ") == "背景"
    with pytest.raises(ValidationError):
        validate_context({"a": 1})
