"""Shared fixtures for rolebridge tests."""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional

import pytest

from rolebridge.utils.exceptions import UpstreamError

SAMPLE_ANALYSIS: Dict[str, Any] = {
    "direction": "PM_TO_DEV",
    "intent": "一键导出报表",
    "confidence_score": 0.62,
    "structured_data": {
        "logic_core": "用户在报表页点击按钮即可导出当前筛选结果",
        "constraints": ["导出格式未说明"],
        "tech_context": ["报表服务", "对象存储"],
    },
    "missing_info": [
        {
            "id": "q1",
            "priority": "HIGH",
            "question": "数据时效要求是什么？",
            "reason": "决定是否需要实时查询",
            "options": ["实时", "T+1"],
            "default_assumption": "T+1",
        },
        {
            "id": "q2",
            "priority": "MEDIUM",
            "question": "预计并发量多大？",
            "reason": "影响导出任务的排队策略",
            "options": [],
            "default_assumption": "QPS<100",
        },
    ],
    "can_proceed_directly": False,
}


@pytest.fixture
def analysis_dict() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_ANALYSIS)


def sse_body(fragments: List[str], done: bool = True) -> bytes:
    """Build an upstream OpenAI-style event stream body."""
    lines = []
    for fragment in fragments:
        payload = {"choices": [{"delta": {"content": fragment}}]}
        lines.append(f"data: {json.dumps(payload, ensure_ascii=False)}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


class FakeGateway:
    """Stands in for LLMGateway in stage tests.

    Yields the configured fragments and records every call.
    """

    def __init__(
        self,
        fragments: Optional[List[str]] = None,
        error: Optional[Exception] = None,
    ):
        self.fragments = fragments or []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def stream_completion(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        for fragment in self.fragments:
            yield fragment
        if self.error is not None:
            raise self.error

    async def complete(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        if self.error is not None:
            raise self.error
        return "".join(self.fragments)

    @property
    def last_user_prompt(self) -> str:
        return self.calls[-1]["messages"][-1]["content"]

    @property
    def last_system_prompt(self) -> str:
        return self.calls[-1]["messages"][0]["content"]


@pytest.fixture
def failing_gateway() -> FakeGateway:
    return FakeGateway(["部分"], error=UpstreamError("boom", status_code=502))


@pytest.fixture
def make_gateway():
    """Factory for FakeGateway instances."""
    return FakeGateway


@pytest.fixture
def upstream_body():
    """Builder for upstream event stream bodies."""
    return sse_body
