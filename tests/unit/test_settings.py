"""Unit tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from src.engine import EngineClient
from src.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_engine_settings_accept_n8n_names(monkeypatch):
    monkeypatch.setenv("N8N_API_URL", "http://n8n.internal:5678/api/v1")
    monkeypatch.setenv("N8N_API_KEY", "abc")

    settings = Settings(_env_file=None)

    assert settings.engine_api_url == "http://n8n.internal:5678/api/v1"
    assert settings.engine_api_key.get_secret_value() == "abc"


def test_api_key_is_not_printed():
    settings = Settings(_env_file=None, engine_api_key="super-secret")

    assert "super-secret" not in repr(settings)


def test_retry_bounds():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, deployment_max_retries=11)


def test_engine_client_reads_settings(monkeypatch):
    monkeypatch.setenv("ENGINE_API_URL", "http://engine:5678/api/v1")
    monkeypatch.setenv("ENGINE_API_KEY", "k")
    monkeypatch.setenv("ENGINE_HEALTH_TIMEOUT_SECONDS", "2.5")

    client = EngineClient()

    assert client.config.api_url == "http://engine:5678/api/v1"
    assert client.config.api_key == "k"
    assert client.config.health_timeout == 2.5
    assert client.health_url == "http://engine:5678/healthz"
