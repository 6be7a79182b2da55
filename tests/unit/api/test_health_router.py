"""Tests for the health endpoint."""

from datetime import datetime

from fastapi.testclient import TestClient

from rolebridge.api.config import TranslatorConfig
from rolebridge.api.main import create_app


def test_health_reports_configuration_flags(monkeypatch):
    monkeypatch.setattr(TranslatorConfig, "LLM_API_KEY", "sk-secret")
    monkeypatch.setattr(TranslatorConfig, "LLM_API_BASE_URL", "")
    monkeypatch.setattr(TranslatorConfig, "LLM_MODEL", "gpt-4o")

    response = TestClient(create_app()).get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["api_key_configured"] is True
    assert data["api_base_configured"] is False
    assert data["model_configured"] is True
    assert "sk-secret" not in response.text
    datetime.fromisoformat(data["timestamp"])
