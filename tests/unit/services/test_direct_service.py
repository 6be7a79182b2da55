"""Tests for the direct translation stage."""

import pytest

from rolebridge.llm.prompts import Stage
from rolebridge.models.translation import Direction
from rolebridge.services.direct_service import DirectService
from rolebridge.streaming.events import EventType, FrameDecoder
from rolebridge.streaming.transport import sse_frames


@pytest.mark.asyncio
async def test_stream_forwards_fragments_then_done(make_gateway):
    gateway = make_gateway(["## 🎯 ", "业务价值核心"])
    service = DirectService(gateway)

    events = [e async for e in service.stream(Direction.DEV_TO_PM, "把接口 P99 从 800ms 降到 200ms")]

    assert [e.text for e in events[:-1]] == ["## 🎯 ", "业务价值核心"]
    assert events[-1].type is EventType.DONE
    assert gateway.calls[0]["stage"] is Stage.DIRECT
    assert gateway.calls[0]["content_length"] == len("把接口 P99 从 800ms 降到 200ms")
    assert "structured_output" not in gateway.calls[0]
    assert "开发工程师的原始描述" in gateway.last_user_prompt


@pytest.mark.asyncio
async def test_translate_returns_full_text(make_gateway):
    service = DirectService(make_gateway(["a", "b"]))
    assert await service.translate(Direction.PM_TO_DEV, "x") == "ab"


@pytest.mark.asyncio
async def test_upstream_failure_becomes_error_frame(failing_gateway):
    service = DirectService(failing_gateway)

    frames = [f async for f in sse_frames(service.stream(Direction.PM_TO_DEV, "x"))]
    events = FrameDecoder().feed("".join(frames))

    assert [e.type for e in events] == [EventType.CONNECTED, EventType.CHUNK, EventType.ERROR]
    assert "boom" in events[-1].text
