"""Tests for prompt templates."""

import json

import pytest

from rolebridge.llm.prompts import (
    PROMPTS,
    Stage,
    build_analysis_user_prompt,
    build_direct_user_prompt,
    build_synthesis_user_prompt,
    get_template,
)
from rolebridge.models.translation import Direction


def test_every_direction_and_stage_has_a_template():
    assert set(PROMPTS) == {(d, s) for d in Direction for s in Stage}


def test_templates_cannot_be_replaced():
    with pytest.raises(TypeError):
        PROMPTS[(Direction.PM_TO_DEV, Stage.DIRECT)] = None


@pytest.mark.parametrize("direction", list(Direction))
def test_analysis_prompts_demand_json_with_default_assumptions(direction):
    system = get_template(direction, Stage.ANALYSIS).system
    assert "JSON Schema" in system
    assert "default_assumption" in system
    assert '"can_proceed_directly": boolean' in system


@pytest.mark.parametrize("direction", list(Direction))
def test_synthesis_prompts_state_precedence_rule(direction):
    system = get_template(direction, Stage.SYNTHESIS).system
    assert "用户补充回答 > Analysis中的默认假设(default_assumption) > 原始输入" in system
    assert "拒绝废话" in system


@pytest.mark.parametrize("direction", list(Direction))
def test_direct_prompts_forbid_questions(direction):
    assert "不要向用户提问" in get_template(direction, Stage.DIRECT).system


def test_structures_follow_direction():
    assert "给开发发的群消息" in get_template(Direction.PM_TO_DEV, Stage.DIRECT).system
    assert "给产品发的群消息" in get_template(Direction.DEV_TO_PM, Stage.DIRECT).system


def test_analysis_user_prompt_includes_context_only_when_given():
    with_context = build_analysis_user_prompt(Direction.PM_TO_DEV, "导出报表", "B端客户")
    without = build_analysis_user_prompt(Direction.PM_TO_DEV, "导出报表")

    assert "导出报表" in with_context
    assert "B端客户" in with_context
    assert "补充背景" not in without


def test_synthesis_user_prompt_embeds_inputs_verbatim(analysis_dict):
    answers = [{"id": "q2", "answer": "QPS<500"}]
    prompt = build_synthesis_user_prompt(
        Direction.PM_TO_DEV, analysis_dict, answers, "做一个导出功能"
    )

    assert json.dumps(analysis_dict, ensure_ascii=False, indent=2) in prompt
    assert json.dumps(answers, ensure_ascii=False, indent=2) in prompt
    assert "做一个导出功能" in prompt


def test_direct_user_prompt_names_source_role():
    assert "产品经理的原始描述" in build_direct_user_prompt(Direction.PM_TO_DEV, "x")
    assert "开发工程师的原始描述" in build_direct_user_prompt(Direction.DEV_TO_PM, "x")


def test_user_content_with_braces_is_not_interpreted():
    prompt = build_direct_user_prompt(Direction.DEV_TO_PM, "config = {timeout}")
    assert "config = {timeout}" in prompt
