"""Configuration management for the agent runtime."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dropship_agents.core.models import AgentSettings


def _optional_seconds(raw: Optional[str], default: Optional[float]) -> Optional[float]:
    if raw is None or raw == "":
        return default
    value = float(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Azure OpenAI service configuration."""

    api_key: str
    endpoint: str
    api_version: str = "2024-02-15-preview"
    deployment_name: str = "gpt-4"
    max_concurrent: int = 50


@dataclass(frozen=True)
class AgentDefaults:
    """Runtime knobs applied to every agent the orchestrator builds."""

    timeout: Optional[float] = 60.0
    autopilot_timeout: Optional[float] = 600.0
    retry_attempts: int = 3
    think_delay: float = 0.5
    # Multiplier for the simulated latency of default strategies; 0 disables it.
    latency_scale: float = 1.0
    message_log_size: int = 100

    def settings_for(self, *, autopilot: bool = False) -> AgentSettings:
        return AgentSettings(
            retry_attempts=self.retry_attempts,
            timeout=self.autopilot_timeout if autopilot else self.timeout,
            think_delay=self.think_delay,
            message_log_size=self.message_log_size,
        )


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    azure_openai: Optional[AzureOpenAIConfig] = None
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False
    agents: AgentDefaults = field(default_factory=AgentDefaults)
    random_seed: Optional[int] = None

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        azure_key = os.getenv("AZURE_OPENAI_KEY")
        azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")

        azure_config = None
        if azure_key and azure_endpoint:
            azure_config = AzureOpenAIConfig(
                api_key=azure_key,
                endpoint=azure_endpoint,
                api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
                deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4"),
                max_concurrent=int(os.getenv("AZURE_OPENAI_MAX_CONCURRENT", "50")),
            )

        agents = AgentDefaults(
            timeout=_optional_seconds(os.getenv("AGENT_TIMEOUT_SECONDS"), 60.0),
            autopilot_timeout=_optional_seconds(os.getenv("AUTOPILOT_TIMEOUT_SECONDS"), 600.0),
            retry_attempts=int(os.getenv("AGENT_RETRY_ATTEMPTS", "3")),
            think_delay=float(os.getenv("AGENT_THINK_DELAY", "0.5")),
            latency_scale=float(os.getenv("AGENT_LATENCY_SCALE", "1.0")),
            message_log_size=int(os.getenv("AGENT_MESSAGE_LOG_SIZE", "100")),
        )

        seed = os.getenv("DROPSHIP_RANDOM_SEED")
        environment = os.getenv("ENVIRONMENT", "development")
        return cls(
            azure_openai=azure_config,
            environment=environment,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=os.getenv("LOG_FORMAT", "json" if environment == "production" else "console") == "json",
            agents=agents,
            random_seed=int(seed) if seed else None,
        )
