"""
Tests for service routes, configuration and log redaction.
"""
import logging

import pytest

from chatrelay.config import ProviderConfig, Settings
from chatrelay.core.logging import RedactingFormatter, redact


def test_health_check(test_client):
    response = test_client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_banner(test_client):
    response = test_client.get("/")
    assert response.status_code == 200
    assert "POST /chat" in response.text


def test_models_listing(test_client_unconfigured):
    response = test_client_unconfigured.get("/api/models")
    assert response.status_code == 200
    assert response.json() == {
        "models": [
            {"id": "chatgpt", "provider": "openai", "configured": False},
            {"id": "googleai", "provider": "google", "configured": False},
        ]
    }


def test_cors_allows_configured_origin(test_client):
    response = test_client.options(
        "/chat",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "http://example.com")


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    monkeypatch.setenv("OPENAI_BASE_URL", "https://proxy.example.com/v1/")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.example, http://b.example")
    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "12.5")
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.origins == ["http://a.example", "http://b.example"]
    assert settings.provider_timeout_seconds == 12.5
    openai = settings.openai()
    assert openai.api_key == "sk-from-env"
    assert openai.model_name == "gpt-4o-mini"
    assert openai.endpoint_url == "https://proxy.example.com/v1"
    assert settings.google().api_key is None


def test_provider_config_is_immutable():
    config = ProviderConfig(api_key="k", model_name="m", endpoint_url="https://x")
    with pytest.raises(Exception):
        config.api_key = "other"


def test_redact_masks_keys():
    text = "key sk-abcdefghijklmnopqrstuvwxyz and url https://g.test/x?key=secret123&alt=json"
    masked = redact(text)
    assert "sk-abcdefghijklmnopqrstuvwxyz" not in masked
    assert "secret123" not in masked
    assert "alt=json" in masked


def test_formatter_masks_arguments():
    formatter = RedactingFormatter("%(message)s")
    record = logging.LogRecord(
        "test", logging.INFO, __file__, 1, "calling %s", ("AIza" + "A" * 35,), None
    )
    assert formatter.format(record) == "calling ***"


def test_module_entry_point_does_not_start_server_on_import(monkeypatch):
    import importlib
    import sys

    import chatrelay.main

    calls = []
    monkeypatch.setattr(chatrelay.main, "run", lambda: calls.append(True))
    monkeypatch.delitem(sys.modules, "chatrelay.__main__", raising=False)
    importlib.import_module("chatrelay.__main__")
    assert calls == []
