"""LLM client pool for shared model access with concurrency control."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog
from openai import AsyncAzureOpenAI

from dropship_agents.config import AzureOpenAIConfig

logger = structlog.get_logger(__name__)


class LLMPool:
    """Manages shared LLM clients with concurrency limiting."""

    def __init__(self) -> None:
        self._clients: Dict[str, Any] = {}
        self._deployments: Dict[str, str] = {}
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._initialized: Dict[str, bool] = {}

    def register_azure_openai(self, name: str, config: AzureOpenAIConfig) -> None:
        """Register an Azure OpenAI model configuration; the client is built on first use."""
        self._clients[name] = config
        self._deployments[name] = config.deployment_name
        self._semaphores[name] = asyncio.Semaphore(config.max_concurrent)
        self._initialized[name] = False

    def register_client(self, name: str, client: Any, *, model: Optional[str] = None, max_concurrent: int = 10) -> None:
        """Register an already constructed OpenAI-compatible client."""
        self._clients[name] = client
        self._deployments[name] = model or name
        self._semaphores[name] = asyncio.Semaphore(max_concurrent)
        self._initialized[name] = True

    def has_model(self, name: str) -> bool:
        return name in self._clients

    @asynccontextmanager
    async def acquire(self, model_name: str) -> AsyncIterator[Any]:
        """Acquire access to a model client with concurrency control."""
        if model_name not in self._clients:
            raise KeyError(f"Model '{model_name}' not registered in LLM pool")

        semaphore = self._semaphores[model_name]
        async with semaphore:
            if not self._initialized[model_name]:
                self._initialize_client(model_name)
            yield self._clients[model_name]

    async def complete(self, model_name: str, messages: List[Dict[str, str]], **kwargs: Any) -> str:
        """Run one chat completion and return the text of the first choice."""
        async with self.acquire(model_name) as client:
            response = await client.chat.completions.create(
                model=self._deployments[model_name],
                messages=messages,
                **kwargs,
            )
        content = response.choices[0].message.content or ""
        logger.debug("llm_pool.completion", model=model_name, chars=len(content))
        return content

    def _initialize_client(self, model_name: str) -> None:
        config = self._clients[model_name]
        if isinstance(config, AzureOpenAIConfig):
            self._clients[model_name] = AsyncAzureOpenAI(
                api_key=config.api_key,
                api_version=config.api_version,
                azure_endpoint=config.endpoint,
            )
            logger.info("llm_pool.client_initialized", model=model_name, endpoint=config.endpoint)
        self._initialized[model_name] = True
