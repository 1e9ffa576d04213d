"""Tests for environment driven configuration."""
from __future__ import annotations

import pytest

from dropship_agents.config import AgentDefaults, Config
from dropship_agents.runtime import COPYWRITER_MODEL, build_llm_pool


def test_defaults_without_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AZURE_OPENAI_KEY", "AZURE_OPENAI_ENDPOINT", "ENVIRONMENT", "LOG_FORMAT", "DROPSHIP_RANDOM_SEED"):
        monkeypatch.delenv(name, raising=False)

    config = Config.from_env()

    assert config.azure_openai is None
    assert config.environment == "development"
    assert config.log_json is False
    assert config.random_seed is None
    assert not build_llm_pool(config).has_model(COPYWRITER_MODEL)


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZURE_OPENAI_KEY", "secret")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")
    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "copy-4")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("AGENT_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("AGENT_LATENCY_SCALE", "0.25")
    monkeypatch.setenv("DROPSHIP_RANDOM_SEED", "11")

    config = Config.from_env()

    assert config.azure_openai.deployment_name == "copy-4"
    assert config.log_json is True
    assert config.agents.timeout is None
    assert config.agents.latency_scale == 0.25
    assert config.random_seed == 11
    assert build_llm_pool(config).has_model(COPYWRITER_MODEL)


def test_autopilot_gets_its_own_timeout() -> None:
    defaults = AgentDefaults(timeout=5.0, autopilot_timeout=50.0, think_delay=0.0)
    assert defaults.settings_for().timeout == 5.0
    assert defaults.settings_for(autopilot=True).timeout == 50.0
    assert defaults.settings_for().think_delay == 0.0
