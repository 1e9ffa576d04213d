"""Application runtime composition helpers."""
from __future__ import annotations

import random
from typing import Dict, Optional

from dropship_agents.agents.autopilot import AutoPilotController
from dropship_agents.agents.base import Agent
from dropship_agents.agents.content_master import ContentMaster
from dropship_agents.agents.price_optimizer import PriceOptimizer
from dropship_agents.agents.product_scout import ProductScout
from dropship_agents.agents.trend_hunter import TrendHunter
from dropship_agents.config import Config
from dropship_agents.core.models import AgentType
from dropship_agents.orchestration.orchestrator import AgentFactory, Orchestrator
from dropship_agents.services.llm_pool import LLMPool
from dropship_agents.services.suppliers import SupplierRegistry, default_suppliers

COPYWRITER_MODEL = "gpt-4"


def build_llm_pool(config: Config) -> LLMPool:
    pool = LLMPool()
    # Register Azure OpenAI if configured
    if config.azure_openai:
        pool.register_azure_openai(COPYWRITER_MODEL, config.azure_openai)
    return pool


def default_catalog(
    config: Config,
    *,
    llm_pool: Optional[LLMPool] = None,
    suppliers: Optional[SupplierRegistry] = None,
    rng: Optional[random.Random] = None,
) -> Dict[AgentType, AgentFactory]:
    """Factories for every agent type that has a default strategy.

    ``competitor-spy`` has none and is left out of the catalog.
    """
    defaults = config.agents
    rng = rng or random.Random(config.random_seed)
    scale = defaults.latency_scale
    suppliers = suppliers or default_suppliers()

    def trend_hunter(_: Orchestrator) -> Agent:
        return Agent(AgentType.TREND_HUNTER, TrendHunter(rng=rng, latency_scale=scale), defaults.settings_for())

    def product_scout(_: Orchestrator) -> Agent:
        strategy = ProductScout(suppliers=suppliers, rng=rng, latency_scale=scale)
        return Agent(AgentType.PRODUCT_SCOUT, strategy, defaults.settings_for())

    def content_master(_: Orchestrator) -> Agent:
        strategy = ContentMaster(rng=rng, latency_scale=scale, llm_pool=llm_pool, llm_model=COPYWRITER_MODEL)
        return Agent(AgentType.CONTENT_MASTER, strategy, defaults.settings_for())

    def price_optimizer(_: Orchestrator) -> Agent:
        return Agent(AgentType.PRICE_OPTIMIZER, PriceOptimizer(rng=rng, latency_scale=scale), defaults.settings_for())

    def auto_pilot(orchestrator: Orchestrator) -> Agent:
        controller = AutoPilotController(orchestrator, rng=rng)
        agent = Agent(AgentType.AUTO_PILOT, controller, defaults.settings_for(autopilot=True))
        controller.bind(agent)
        return agent

    return {
        AgentType.TREND_HUNTER: trend_hunter,
        AgentType.PRODUCT_SCOUT: product_scout,
        AgentType.CONTENT_MASTER: content_master,
        AgentType.PRICE_OPTIMIZER: price_optimizer,
        AgentType.AUTO_PILOT: auto_pilot,
    }


def build_orchestrator(config: Optional[Config] = None, *, llm_pool: Optional[LLMPool] = None) -> Orchestrator:
    """Compose a fresh orchestrator; callers own the returned instance."""
    config = config or Config.from_env()
    if llm_pool is None:
        llm_pool = build_llm_pool(config)
    return Orchestrator(default_catalog(config, llm_pool=llm_pool))
