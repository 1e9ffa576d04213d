"""Step lists for the named workflows."""
from __future__ import annotations

from typing import List

from dropship_agents.core.models import AgentType, StepDefinition


def product_discovery_steps(
    niche: str,
    *,
    max_products: int = 10,
    target_margin: float = 30,
    depth: str = "comprehensive",
) -> List[StepDefinition]:
    return [
        StepDefinition(AgentType.TREND_HUNTER, "analyze_trends", input={"niche": niche, "depth": depth}),
        StepDefinition(AgentType.PRODUCT_SCOUT, "scout_products", options={"max_products": max_products}),
        StepDefinition(
            AgentType.CONTENT_MASTER,
            "generate_content",
            options={"style": "premium", "languages": ["en"]},
        ),
        StepDefinition(
            AgentType.PRICE_OPTIMIZER,
            "optimize_pricing",
            options={"strategy": "competitive", "target_margin": target_margin},
        ),
    ]


def quick_import_steps(url: str) -> List[StepDefinition]:
    return [
        StepDefinition(AgentType.PRODUCT_SCOUT, "import_product", input={"url": url}),
        StepDefinition(AgentType.CONTENT_MASTER, "generate_content", options={"style": "conversion-focused"}),
        StepDefinition(AgentType.PRICE_OPTIMIZER, "suggest_price", options={"strategy": "competitive"}),
    ]


def competitor_analysis_steps(niche: str) -> List[StepDefinition]:
    return [
        StepDefinition(AgentType.TREND_HUNTER, "find_competitors", input={"niche": niche}),
        StepDefinition(AgentType.PRICE_OPTIMIZER, "analyze_competitor_pricing"),
        StepDefinition(AgentType.CONTENT_MASTER, "generate_competitive_analysis"),
    ]
