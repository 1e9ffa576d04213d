"""Trend analysis strategy: market trends, opportunities and competitor discovery."""
from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from dropship_agents.agents.base import TaskPlan
from dropship_agents.agents.payloads import option, simulate_call, text_input
from dropship_agents.core.errors import StrategyInputError, UnknownTaskError
from dropship_agents.core.market import CompetitorData, CompetitorReport, TrendData, TrendOpportunity, TrendReport
from dropship_agents.core.models import USER, AgentMessage, AgentTask, MessageType, TaskPriority, address_of

if TYPE_CHECKING:
    from dropship_agents.agents.base import Agent

logger = structlog.get_logger(__name__)

NICHE_KEYWORDS: Dict[str, List[str]] = {
    "pet supplies": [
        "automatic pet feeder",
        "pet hair remover",
        "dog training collar",
        "cat water fountain",
        "pet camera",
        "dog car seat",
    ],
    "home decor": [
        "LED strip lights",
        "floating shelves",
        "wall art canvas",
        "smart bulbs",
        "aroma diffuser",
        "neon signs",
    ],
    "electronics": [
        "wireless earbuds",
        "phone holder",
        "portable charger",
        "ring light",
        "webcam cover",
        "cable organizer",
    ],
    "beauty": [
        "jade roller",
        "LED face mask",
        "hair straightener brush",
        "makeup organizer",
        "nail art kit",
        "teeth whitening",
    ],
    "fitness": [
        "resistance bands",
        "yoga mat",
        "massage gun",
        "smart watch",
        "water bottle",
        "jump rope",
    ],
}

_STORE_NAMES = ("TrendyMart", "DailyDeals Hub", "GadgetNest", "ShopSphere", "PrimePick Store")
_SEASONS = ("spring", "summer", "fall", "winter")


def keywords_for(niche: str) -> List[str]:
    lowered = niche.lower()
    for key, keywords in NICHE_KEYWORDS.items():
        if key in lowered:
            return list(keywords)
    return list(NICHE_KEYWORDS["electronics"])


class TrendHunter:
    """Analyze market trends and identify product opportunities."""

    name = "TrendHunter"
    capabilities = [
        "Analyze market trends",
        "Identify winning products",
        "Track seasonal patterns",
        "Monitor competitor niches",
        "Score product potential",
    ]
    default_action = "analyze_trends"

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        latency: tuple = (1.0, 2.0),
        latency_scale: float = 1.0,
    ) -> None:
        self._rng = rng or random.Random()
        self._latency = latency
        self._latency_scale = latency_scale

    def plan(self, action: str, payload: Any) -> TaskPlan:
        niche = text_input(payload, "niche") or "unknown niche"
        if action == "find_competitors":
            return TaskPlan(
                description=f"Finding competitors for: {niche}",
                priority=TaskPriority.MEDIUM,
                thought=f'Mapping the competitive landscape of "{niche}"...',
            )
        return TaskPlan(
            description=f"Analyzing trends for: {niche}",
            priority=TaskPriority.HIGH,
            thought=f'Scanning market data for "{niche}"...',
        )

    async def perform_task(self, agent: Agent, task: AgentTask) -> Any:
        if task.type == "analyze_trends":
            return await self._analyze_trends(agent, task)
        if task.type == "find_competitors":
            return await self._find_competitors(agent, task)
        raise UnknownTaskError(f"Unknown task type: {task.type}")

    def handle_message(self, agent: Agent, message: AgentMessage) -> None:
        if message.type == MessageType.REQUEST:
            logger.info("trend_hunter.request_received", sender=address_of(message.sender), content=message.content)

    # ------------------------------------------------------------------
    async def _analyze_trends(self, agent: Agent, task: AgentTask) -> TrendReport:
        niche = self._niche(task)

        agent.send_message(USER, MessageType.PROGRESS, f'Starting trend analysis for "{niche}"...')
        agent.update_progress(10)
        await simulate_call(self._rng, *self._latency, scale=self._latency_scale)
        agent.update_progress(30)

        agent.send_message(USER, MessageType.PROGRESS, "Analyzing search volumes and growth rates...")
        trends = self._trend_data(niche)
        agent.update_progress(50)

        agent.send_message(USER, MessageType.PROGRESS, "Identifying top opportunities...")
        opportunities = self._opportunities(trends)
        agent.update_progress(70)

        agent.send_message(USER, MessageType.PROGRESS, "Generating insights and recommendations...")
        report = TrendReport(
            niche=niche,
            trends=trends,
            insights=self._insights(trends, niche),
            recommendations=self._recommendations(trends, opportunities),
            top_opportunities=opportunities,
        )
        agent.update_progress(90)

        agent.send_message(
            USER,
            MessageType.INFO,
            f"Found {len(trends)} trending products with {len(opportunities)} high-potential opportunities!",
        )
        agent.update_progress(100)
        return report

    async def _find_competitors(self, agent: Agent, task: AgentTask) -> CompetitorReport:
        niche = self._niche(task)
        agent.send_message(USER, MessageType.PROGRESS, f'Searching stores selling "{niche}" products...')
        agent.update_progress(20)
        await simulate_call(self._rng, *self._latency, scale=self._latency_scale)

        keywords = keywords_for(niche)
        competitors: List[CompetitorData] = []
        for store in self._rng.sample(_STORE_NAMES, k=3):
            listed = self._rng.sample(keywords, k=3)
            products = [
                {
                    "title": keyword.title(),
                    "price": round(self._rng.uniform(12, 80), 2),
                    "url": f"https://{store.lower().replace(' ', '')}.com/products/{keyword.replace(' ', '-')}",
                }
                for keyword in listed
            ]
            prices = [p["price"] for p in products]
            competitors.append(
                CompetitorData(
                    name=store,
                    url=f"https://{store.lower().replace(' ', '')}.com",
                    products=products,
                    price_range={
                        "min": min(prices),
                        "max": max(prices),
                        "avg": round(sum(prices) / len(prices), 2),
                    },
                    strengths=self._rng.sample(
                        ["Fast shipping", "Strong social presence", "Large catalog", "Loyal customers"], k=2
                    ),
                    weaknesses=self._rng.sample(
                        ["Generic product copy", "Slow support", "High prices", "Few reviews"], k=2
                    ),
                    market_share=round(self._rng.uniform(2, 25), 1),
                )
            )
        agent.update_progress(80)

        total_share = sum(c.market_share for c in competitors)
        report = CompetitorReport(
            niche=niche,
            competitors=competitors,
            market_overview=(
                f"{len(competitors)} notable stores cover roughly {total_share:.0f}% of the {niche} market."
            ),
            threats=[f"{c.name}: {c.strengths[0].lower()}" for c in competitors],
        )
        agent.send_message(USER, MessageType.INFO, f"Identified {len(competitors)} competitors in {niche}.")
        agent.update_progress(100)
        return report

    # ------------------------------------------------------------------
    @staticmethod
    def _niche(task: AgentTask) -> str:
        niche = text_input(task.input, "niche") or str(option(task, "niche", "")).strip()
        if not niche:
            raise StrategyInputError("A niche is required for trend analysis")
        return niche

    def _trend_data(self, niche: str) -> List[TrendData]:
        rng = self._rng
        keywords = keywords_for(niche)
        trends = []
        for keyword in keywords:
            seasons = list(_SEASONS)
            rng.shuffle(seasons)
            trends.append(
                TrendData(
                    keyword=keyword,
                    search_volume=rng.randint(10000, 59999),
                    growth_rate=rng.randint(-20, 129),
                    competition=rng.choice(("low", "medium", "high")),
                    seasonality=seasons[: rng.randint(1, 3)],
                    related_keywords=[k for k in keywords if k != keyword][:3],
                    score=rng.randint(60, 99),
                )
            )
        return trends

    def _opportunities(self, trends: List[TrendData]) -> List[TrendOpportunity]:
        ranked = sorted(
            (t for t in trends if t.score >= 75 and t.growth_rate > 20),
            key=lambda t: t.score,
            reverse=True,
        )
        return [
            TrendOpportunity(
                product=trend.keyword,
                reason=f"High growth ({trend.growth_rate}%) with {trend.competition} competition",
                potential_profit=self._rng.randint(50, 249),
                risk_level=trend.competition,
            )
            for trend in ranked[:5]
        ]

    @staticmethod
    def _insights(trends: List[TrendData], niche: str) -> List[str]:
        avg_growth = sum(t.growth_rate for t in trends) / len(trends)
        high_growth = sum(1 for t in trends if t.growth_rate > 50)
        low_competition = sum(1 for t in trends if t.competition == "low")
        insights = [
            f"The {niche} market shows {'strong' if avg_growth > 30 else 'moderate'} growth potential "
            f"(avg {avg_growth:.1f}%)",
            f"{high_growth} products are experiencing rapid growth (>50%)",
            f"{low_competition} products have low competition - easier market entry",
        ]
        if trends:
            top = trends[0]
            insights.append(f'Top trending: "{top.keyword}" with {top.search_volume:,} monthly searches')
        return insights

    @staticmethod
    def _recommendations(trends: List[TrendData], opportunities: List[TrendOpportunity]) -> List[str]:
        recommendations = []
        if opportunities:
            best = opportunities[0]
            recommendations.append(f'Focus on "{best.product}" - highest potential with {best.risk_level} risk')
        quick_wins = [t.keyword for t in trends if t.competition == "low" and t.growth_rate > 0]
        if quick_wins:
            recommendations.append(f"Quick wins: {', '.join(quick_wins[:2])} have low competition")
        recommendations.append("Consider bundling complementary products to increase average order value")
        recommendations.append("Test with small inventory before scaling to minimize risk")
        return recommendations
