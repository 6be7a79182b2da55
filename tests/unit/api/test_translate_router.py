"""Tests for the translation endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from rolebridge.api.config import TranslatorConfig
from rolebridge.api.main import create_app
from rolebridge.api.state import AppState, get_app_state
from rolebridge.services.analysis_service import AnalysisService
from rolebridge.services.direct_service import DirectService
from rolebridge.services.synthesis_service import SynthesisService
from rolebridge.streaming.events import EventType, FrameDecoder
from rolebridge.utils.audit_logger import AuditEventType, InMemoryAuditLogger


def _events(response):
    return FrameDecoder().feed(response.content)


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(TranslatorConfig, "LLM_API_KEY", "test-key")
    monkeypatch.setattr(TranslatorConfig, "LLM_API_BASE_URL", "https://llm.example.com/v1")
    monkeypatch.setattr(TranslatorConfig, "LLM_MODEL", "test-model")
    monkeypatch.setattr(TranslatorConfig, "MAX_CONTENT_LENGTH", 10000)


@pytest.fixture
def gateways(make_gateway, analysis_dict):
    return {
        "direct": make_gateway(["## 🚀 ", "一句话同步"]),
        "analysis": make_gateway([json.dumps(analysis_dict, ensure_ascii=False)]),
        "synthesis": make_gateway(["## 💬 ", "给开发发的群消息"]),
    }


@pytest.fixture
def state(gateways):
    app_state = AppState()
    app_state.audit = InMemoryAuditLogger()
    app_state.direct = DirectService(gateways["direct"])
    app_state.analysis = AnalysisService(gateways["analysis"], app_state.audit)
    app_state.synthesis = SynthesisService(gateways["synthesis"], app_state.audit)
    return app_state


@pytest.fixture
def client(configured, state):
    app = create_app()
    app.dependency_overrides[get_app_state] = lambda: state
    return TestClient(app)


def test_direct_streams_connected_chunks_done(client, gateways):
    response = client.post(
        "/api/direct", json={"direction": "pm-to-dev", "content": "做一个能一键导出报表的功能"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"

    events = _events(response)
    assert [e.type for e in events] == [
        EventType.CONNECTED,
        EventType.CHUNK,
        EventType.CHUNK,
        EventType.DONE,
    ]
    assert "".join(e.text for e in events[1:3]) == "## 🚀 一句话同步"


def test_content_at_the_limit_is_accepted(client):
    response = client.post(
        "/api/direct", json={"direction": "pm-to-dev", "content": "a" * 10000}
    )
    assert response.status_code == 200


def test_content_over_the_limit_is_rejected_before_streaming(client, gateways):
    response = client.post(
        "/api/direct", json={"direction": "pm-to-dev", "content": "a" * 10001}
    )

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["error"] == "validation_error"
    assert "10000" in response.json()["message"]
    assert gateways["direct"].calls == []


def test_length_limit_counts_surrounding_whitespace(client):
    response = client.post(
        "/api/direct", json={"direction": "pm-to-dev", "content": " " + "a" * 10000}
    )
    assert response.status_code == 400


@pytest.mark.parametrize("content", ["", "   \n\t", None, 42])
def test_blank_or_missing_content_is_rejected(client, content):
    response = client.post("/api/direct", json={"direction": "pm-to-dev", "content": content})
    assert response.status_code == 400


@pytest.mark.parametrize("direction", ["pm_to_dev", "PM_TO_DEV", "", None])
def test_unknown_direction_is_rejected(client, direction):
    response = client.post("/api/direct", json={"direction": direction, "content": "x"})

    assert response.status_code == 400
    assert "pm-to-dev or dev-to-pm" in response.json()["message"]


def test_content_is_trimmed_before_use(client, gateways):
    client.post("/api/direct", json={"direction": "dev-to-pm", "content": "  引入缓存  "})

    call = gateways["direct"].calls[0]
    assert call["content_length"] == 4
    assert "---\n引入缓存\n---" in gateways["direct"].last_user_prompt


def test_non_json_body_is_rejected(client):
    response = client.post(
        "/api/direct", content=b"not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


def test_missing_configuration_fails_before_validation(client, monkeypatch, gateways):
    monkeypatch.setattr(TranslatorConfig, "LLM_API_KEY", "")

    response = client.post("/api/direct", json={"direction": "bogus", "content": ""})

    assert response.status_code == 500
    assert response.json()["error"] == "configuration_error"
    assert "LLM_API_KEY" in response.json()["message"]
    assert gateways["direct"].calls == []


def test_missing_services_report_configuration_error(configured):
    app = create_app()
    app.dependency_overrides[get_app_state] = lambda: AppState()

    response = TestClient(app).post(
        "/api/direct", json={"direction": "pm-to-dev", "content": "x"}
    )
    assert response.status_code == 500


def test_analyze_done_event_carries_analysis_json(client, analysis_dict):
    response = client.post(
        "/api/interactive/analyze",
        json={"direction": "pm-to-dev", "content": "做一个能一键导出报表的功能"},
    )

    events = _events(response)
    assert events[0].type is EventType.CONNECTED
    assert events[-1].type is EventType.DONE
    assert events[-1].payload["json"]["missing_info"][1]["default_assumption"] == "QPS<100"
    assert sum(1 for e in events if e.is_terminal) == 1


def test_analyze_not_json_output_ends_with_error_frame(client, gateways):
    gateways["analysis"].fragments = ["not json at all"]

    response = client.post(
        "/api/interactive/analyze", json={"direction": "dev-to-pm", "content": "缓存优化"}
    )

    assert response.status_code == 200
    events = _events(response)
    assert events[-1].type is EventType.ERROR
    assert not any(e.type is EventType.DONE for e in events)


def test_analyze_passes_context(client, gateways):
    client.post(
        "/api/interactive/analyze",
        json={"direction": "pm-to-dev", "content": "导出", "context": "给财务用"},
    )
    assert "给财务用" in gateways["analysis"].last_user_prompt


def test_synthesize_streams_document(client, gateways, analysis_dict):
    response = client.post(
        "/api/interactive/synthesize",
        json={
            "analysisJson": analysis_dict,
            "answers": [{"id": "q2", "answer": "QPS<500"}],
            "originalText": "  做一个能一键导出报表的功能 ",
        },
    )

    events = _events(response)
    assert [e.type for e in events][-1] is EventType.DONE
    prompt = gateways["synthesis"].last_user_prompt
    assert "QPS<500" in prompt
    assert "T+1" in prompt
    assert "做一个能一键导出报表的功能" in prompt


@pytest.mark.parametrize(
    "body, message",
    [
        ({"answers": [], "originalText": "x"}, "analysisJson"),
        ({"analysisJson": {}, "answers": [], "originalText": "x"}, "analysisJson"),
        ({"analysisJson": {"intent": "x"}, "answers": [], "originalText": "x"}, "analysisJson"),
        ({"answers": [], "originalText": "  "}, "analysisJson"),
    ],
)
def test_synthesize_rejects_bad_analysis(client, body, message):
    response = client.post("/api/interactive/synthesize", json=body)

    assert response.status_code == 400
    assert message in response.json()["message"]


def test_synthesize_rejects_blank_original_text(client, analysis_dict):
    response = client.post(
        "/api/interactive/synthesize",
        json={"analysisJson": analysis_dict, "answers": [], "originalText": " "},
    )
    assert response.status_code == 400
    assert "originalText" in response.json()["message"]


@pytest.mark.parametrize("answers", [None, "q1=T+1", {"id": "q1"}, [{"id": "q1"}]])
def test_synthesize_rejects_bad_answers(client, analysis_dict, answers, gateways):
    response = client.post(
        "/api/interactive/synthesize",
        json={"analysisJson": analysis_dict, "answers": answers, "originalText": "x"},
    )

    assert response.status_code == 400
    assert gateways["synthesis"].calls == []


def test_requests_are_recorded_in_audit_trail(client, state):
    client.post("/api/direct", json={"direction": "pm-to-dev", "content": "长" * 150})

    entry = state.audit.events(AuditEventType.TRANSLATE_REQUEST)[0]["details"]
    assert entry["endpoint"] == "/api/direct"
    assert entry["params"]["content"] == "长" * 100 + "..."


def test_request_id_is_echoed(client):
    response = client.post(
        "/api/direct",
        json={"direction": "pm-to-dev", "content": "x"},
        headers={"X-Request-ID": "req-123"},
    )
    assert response.headers["x-request-id"] == "req-123"

    rejected = client.post(
        "/api/direct",
        json={"direction": "nope", "content": "x"},
        headers={"X-Request-ID": "req-456"},
    )
    assert rejected.json()["request_id"] == "req-456"
