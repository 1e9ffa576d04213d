"""Shared fixtures and builders for the test suite."""
from __future__ import annotations

import random
from typing import Any, Awaitable, Callable, List, Optional

import pytest

from dropship_agents.agents.base import Agent, TaskPlan
from dropship_agents.config import AgentDefaults, Config
from dropship_agents.core.errors import UnknownTaskError
from dropship_agents.core.market import PriceAnalysis, PricingTier, ProfitProjection, ScoutedProduct
from dropship_agents.core.models import AgentMessage, AgentSettings, AgentTask, AgentType
from dropship_agents.runtime import build_orchestrator
from dropship_agents.services.llm_pool import LLMPool

TaskHandler = Callable[[Agent, AgentTask], Awaitable[Any]]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def fast_settings(**overrides: Any) -> AgentSettings:
    values = {"think_delay": 0.0, "timeout": 5.0}
    values.update(overrides)
    return AgentSettings(**values)


def fast_config(**overrides: Any) -> Config:
    agents = AgentDefaults(timeout=10.0, autopilot_timeout=30.0, think_delay=0.0, latency_scale=0.0)
    values = {"agents": agents, "random_seed": 7}
    values.update(overrides)
    return Config(**values)


class StubStrategy:
    """Strategy whose behaviour is a plain coroutine supplied by the test."""

    def __init__(
        self,
        handler: Optional[TaskHandler] = None,
        *,
        name: str = "Stub",
        default_action: str = "run",
        thought: Optional[str] = None,
    ) -> None:
        self.name = name
        self.capabilities = ["Testing"]
        self.default_action = default_action
        self._handler = handler
        self._thought = thought
        self.received: List[AgentMessage] = []

    def plan(self, action: str, payload: Any) -> TaskPlan:
        return TaskPlan(description=f"{action}: {payload!r}", thought=self._thought)

    async def perform_task(self, agent: Agent, task: AgentTask) -> Any:
        if self._handler is None:
            raise UnknownTaskError(f"Unknown task type: {task.type}")
        return await self._handler(agent, task)

    def handle_message(self, agent: Agent, message: AgentMessage) -> None:
        self.received.append(message)


def echo_handler(suffix: str = "") -> TaskHandler:
    async def handler(agent: Agent, task: AgentTask) -> Any:
        return {"action": task.type, "input": task.input, "options": task.options, "suffix": suffix}

    return handler


def stub_agent(agent_type: AgentType = AgentType.TREND_HUNTER, handler: Optional[TaskHandler] = None, **settings: Any) -> Agent:
    return Agent(agent_type, StubStrategy(handler or echo_handler()), fast_settings(**settings))


def make_product(**overrides: Any) -> ScoutedProduct:
    values = {
        "id": "prod-1",
        "title": "Smart Watch Pro",
        "description": "A watch",
        "source_url": "https://cjdropshipping.com/product/1",
        "supplier": "CJ Dropshipping",
        "cost_price": 10.0,
        "suggested_price": 25.0,
        "profit_margin": 60.0,
        "rating": 4.6,
        "reviews": 500,
        "sold": 3000,
        "shipping_time": "7-15 days",
        "competitor_count": 12,
        "score": 80,
    }
    values.update(overrides)
    return ScoutedProduct(**values)


def make_analysis(product: ScoutedProduct, price: float) -> PriceAnalysis:
    unit = price - product.cost_price
    return PriceAnalysis(
        product_id=product.id,
        product_title=product.title,
        current_price=product.suggested_price,
        cost_price=product.cost_price,
        optimal_price=price,
        price_range={"min": price * 0.85, "max": price * 1.25},
        competitor_prices=[],
        margin={"optimal": unit / price * 100},
        recommendation="Keep it",
        confidence=80.0,
        pricing_tiers={"standard": PricingTier(price=price, margin=unit / price * 100, expected_sales="Balanced")},
        profit_projection={
            "daily": ProfitProjection(sales=10, revenue=10 * price, profit=10 * unit),
            "weekly": ProfitProjection(sales=70, revenue=70 * price, profit=70 * unit),
            "monthly": ProfitProjection(sales=300, revenue=300 * price, profit=300 * unit),
        },
        dynamic_adjustments=[],
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
async def orchestrator():
    orchestrator = build_orchestrator(fast_config(), llm_pool=LLMPool())
    yield orchestrator
    await orchestrator.stop_all()
