"""Tests for the HTTP translation client."""

import asyncio
import json

import httpx
import pytest

from rolebridge.client.api_client import TranslationApiClient
from rolebridge.client.stream_consumer import CancellationToken, ConsumerState
from rolebridge.models.translation import Answer, Direction
from rolebridge.streaming.events import StreamEvent


def _sse(*events):
    body = StreamEvent.connected().to_frame() + "".join(e.to_frame() for e in events)
    return httpx.Response(
        200, content=body.encode("utf-8"), headers={"Content-Type": "text/event-stream"}
    )


class FakeServer:
    """Routes requests to canned SSE responses and records request bodies."""

    def __init__(self, analysis_json):
        self.analysis_json = analysis_json
        self.requests = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append((request.url.path, body))
        if request.url.path == "/api/interactive/analyze":
            text = json.dumps(self.analysis_json, ensure_ascii=False)
            return _sse(StreamEvent.chunk(text), StreamEvent.done({"json": self.analysis_json}))
        if request.url.path == "/api/interactive/synthesize":
            return _sse(StreamEvent.chunk("## 💬 给开发发的群消息"), StreamEvent.done())
        return _sse(StreamEvent.chunk("ok"), StreamEvent.done())

    def bodies(self, path):
        return [body for p, body in self.requests if p == path]


def make_client(handler):
    return TranslationApiClient(
        client=httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test"
        )
    )


@pytest.mark.asyncio
async def test_direct_collects_streamed_text():
    server = FakeServer({})
    chunks = []

    outcome = await make_client(server).direct(
        Direction.PM_TO_DEV, "做一个导出功能", on_chunk=lambda c, f: chunks.append(c)
    )

    assert outcome.ok
    assert outcome.text == "ok"
    assert chunks == ["ok"]
    assert server.bodies("/api/direct") == [
        {"direction": "pm-to-dev", "content": "做一个导出功能"}
    ]


@pytest.mark.asyncio
async def test_non_success_response_fails_with_server_message():
    async def handler(request):
        return httpx.Response(
            400,
            json={"error": "validation_error", "message": "Content is too long"},
        )

    states = []
    outcome = await make_client(handler).direct(
        Direction.PM_TO_DEV, "x" * 10001, on_state_change=states.append
    )

    assert outcome.state is ConsumerState.FAILED
    assert outcome.error == "Content is too long"
    assert states == [ConsumerState.CONNECTING, ConsumerState.FAILED]


@pytest.mark.asyncio
async def test_connection_error_fails():
    async def handler(request):
        raise httpx.ConnectError("refused", request=request)

    outcome = await make_client(handler).direct(Direction.DEV_TO_PM, "x")

    assert outcome.state is ConsumerState.FAILED
    assert "refused" in outcome.error


@pytest.mark.asyncio
async def test_interactive_skips_questions_when_analysis_allows(analysis_dict):
    analysis_dict["can_proceed_directly"] = True
    analysis_dict["confidence_score"] = 0.9
    server = FakeServer(analysis_dict)
    asked = []

    def provider(analysis):
        asked.append(analysis)
        return [Answer(id="q1", answer="实时")]

    result = await make_client(server).interactive(
        Direction.PM_TO_DEV, "做一个能一键导出报表的功能", provider
    )

    assert result.ok
    assert asked == []
    synth = server.bodies("/api/interactive/synthesize")
    assert len(synth) == 1
    assert synth[0]["answers"] == []
    assert synth[0]["originalText"] == "做一个能一键导出报表的功能"
    assert synth[0]["analysisJson"] == analysis_dict
    assert server.bodies("/api/interactive/analyze")[0]["direction"] == "pm-to-dev"


@pytest.mark.asyncio
async def test_interactive_skips_questions_when_nothing_is_missing(analysis_dict):
    analysis_dict["missing_info"] = []
    server = FakeServer(analysis_dict)

    result = await make_client(server).interactive(
        Direction.PM_TO_DEV, "x", lambda a: pytest.fail("should not ask")
    )

    assert result.ok
    assert server.bodies("/api/interactive/synthesize")[0]["answers"] == []


@pytest.mark.asyncio
async def test_interactive_sends_provided_answers(analysis_dict):
    server = FakeServer(analysis_dict)

    async def provider(analysis):
        assert [item.id for item in analysis.missing_info] == ["q1", "q2"]
        return [Answer(id="q2", answer="QPS<500")]

    result = await make_client(server).interactive(
        Direction.PM_TO_DEV, "导出", provider, context="B端"
    )

    assert result.ok
    assert result.answers == [Answer(id="q2", answer="QPS<500")]
    synth = server.bodies("/api/interactive/synthesize")[0]
    assert synth["answers"] == [{"id": "q2", "answer": "QPS<500"}]
    assert synth["context"] == "B端"


@pytest.mark.asyncio
async def test_interactive_fails_when_done_has_no_json(analysis_dict):
    async def handler(request):
        return _sse(StreamEvent.chunk("{}"), StreamEvent.done())

    result = await make_client(handler).interactive(
        Direction.PM_TO_DEV, "x", lambda a: []
    )

    assert result.outcome.state is ConsumerState.FAILED
    assert result.analysis is None


@pytest.mark.asyncio
async def test_interactive_stops_when_analysis_fails():
    calls = []

    async def handler(request):
        calls.append(request.url.path)
        return _sse(StreamEvent.error("Analysis result is not valid JSON"))

    result = await make_client(handler).interactive(Direction.DEV_TO_PM, "x", lambda a: [])

    assert result.outcome.state is ConsumerState.FAILED
    assert calls == ["/api/interactive/analyze"]


@pytest.mark.asyncio
async def test_cancelled_token_sends_nothing():
    calls = []

    async def handler(request):
        calls.append(request)
        return _sse(StreamEvent.done())

    token = CancellationToken()
    token.cancel()
    outcome = await make_client(handler).direct(Direction.PM_TO_DEV, "x", token=token)

    assert outcome.state is ConsumerState.CANCELLED
    assert calls == []


@pytest.mark.asyncio
async def test_cancel_while_waiting_for_response_headers():
    async def slow_handler(request):
        await asyncio.sleep(2)
        return _sse(StreamEvent.done())

    states = []
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    loop.call_later(0.1, token.cancel)
    started = loop.time()

    outcome = await make_client(slow_handler).direct(
        Direction.PM_TO_DEV, "x", token=token, on_state_change=states.append
    )

    assert outcome.state is ConsumerState.CANCELLED
    assert loop.time() - started < 1
    assert states == [ConsumerState.CONNECTING, ConsumerState.CANCELLED]
