"""Pricing strategy: competitor prices, optimal price and dynamic rules."""
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

import structlog

from dropship_agents.agents.base import TaskPlan
from dropship_agents.agents.payloads import coerce_products, option, simulate_call
from dropship_agents.core.errors import StrategyInputError, UnknownTaskError
from dropship_agents.core.market import (
    CompetitorPricingReport,
    CompetitorReport,
    PriceAdjustment,
    PriceAnalysis,
    PricingTier,
    ProfitProjection,
    ScoutedProduct,
)
from dropship_agents.core.models import (
    USER,
    AgentMessage,
    AgentTask,
    AgentType,
    MessageType,
    TaskPriority,
    address_of,
    new_id,
    utcnow,
)

if TYPE_CHECKING:
    from dropship_agents.agents.base import Agent

logger = structlog.get_logger(__name__)

STRATEGIES = ("premium", "competitive", "value", "penetration", "skimming")
COMPETITOR_STORES = ("Amazon", "eBay", "Walmart", "Target", "AliExpress")
RULE_CONDITIONS = ("stock_low", "competitor_undercut", "high_demand", "seasonal", "time_based")
DEFAULT_TARGET_MARGIN = 30.0
# June to August and October to December.
PEAK_MONTHS = frozenset({6, 7, 8, 10, 11, 12})

_RULE_REASONS = {
    "stock_low": "Inventory running low - increase price to maximize profit",
    "competitor_undercut": "Competitor lowered price - adjust to stay competitive",
    "high_demand": "High demand detected - premium pricing opportunity",
    "seasonal": "Seasonal demand increase - adjust pricing",
    "time_based": "Scheduled price adjustment window",
}

_POSITION_FACTORS = {
    "premium": 1.2,
    "competitive": 0.97,
    "value": 0.85,
    "penetration": 0.75,
    "skimming": 1.3,
}


@dataclass(slots=True)
class DynamicPricingRule:
    id: str
    name: str
    condition: str
    adjustment: float
    enabled: bool = True


@dataclass(slots=True)
class CompetitorPrice:
    store: str
    price: float
    shipping: float
    total_price: float
    in_stock: bool


@dataclass(slots=True)
class OptimalPrice:
    recommended: float
    minimum: float
    maximum: float


def margin_of(selling_price: float, cost_price: float) -> float:
    if selling_price <= 0:
        return 0.0
    return (selling_price - cost_price) / selling_price * 100


def default_rules() -> List[DynamicPricingRule]:
    return [
        DynamicPricingRule(id="rule-low-stock", name="Low Stock Premium", condition="stock_low", adjustment=10),
        DynamicPricingRule(
            id="rule-competitor", name="Competitor Match", condition="competitor_undercut", adjustment=-5
        ),
        DynamicPricingRule(
            id="rule-high-demand", name="High Demand Premium", condition="high_demand", adjustment=15
        ),
        DynamicPricingRule(id="rule-seasonal", name="Seasonal Adjustment", condition="seasonal", adjustment=20),
    ]


class PriceOptimizer:
    """Analyze market pricing and recommend a profit-maximizing price."""

    name = "PriceOptimizer"
    capabilities = [
        "Analyze competitor pricing",
        "Calculate optimal margins",
        "Track price history",
        "Dynamic pricing rules",
        "A/B test pricing",
        "Profit forecasting",
    ]
    default_action = "optimize_pricing"

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        latency_scale: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._rng = rng or random.Random()
        self._latency_scale = latency_scale
        self._clock = clock
        self._rules: List[DynamicPricingRule] = default_rules()

    # ------------------------------------------------------------------
    # Dynamic rule management
    # ------------------------------------------------------------------
    def get_dynamic_rules(self) -> List[DynamicPricingRule]:
        return [replace(rule) for rule in self._rules]

    def set_dynamic_rule(self, rule_id: str, enabled: bool, adjustment: Optional[float] = None) -> bool:
        """Toggle a rule and optionally change its adjustment; False if unknown."""
        for rule in self._rules:
            if rule.id == rule_id:
                rule.enabled = enabled
                if adjustment is not None:
                    rule.adjustment = adjustment
                return True
        return False

    def add_dynamic_rule(self, name: str, condition: str, adjustment: float, enabled: bool = True) -> DynamicPricingRule:
        if condition not in RULE_CONDITIONS:
            raise StrategyInputError(f"Unknown pricing rule condition: {condition}")
        rule = DynamicPricingRule(
            id=new_id("rule-custom"), name=name, condition=condition, adjustment=adjustment, enabled=enabled
        )
        self._rules.append(rule)
        return replace(rule)

    # ------------------------------------------------------------------
    # Strategy contract
    # ------------------------------------------------------------------
    def plan(self, action: str, payload: Any) -> TaskPlan:
        if action == "analyze_competitor_pricing":
            return TaskPlan(
                description="Analyzing competitor pricing",
                priority=TaskPriority.MEDIUM,
                thought="Comparing competitor price points...",
            )
        products = coerce_products(payload)
        label = products[0].title if len(products) == 1 else f"{len(products)} products"
        return TaskPlan(
            description=f"Optimizing price for: {label}",
            priority=TaskPriority.HIGH,
            thought="Analyzing market data for optimal pricing...",
        )

    async def perform_task(self, agent: Agent, task: AgentTask) -> Any:
        if task.type in ("optimize_pricing", "suggest_price"):
            return await self._optimize_pricing(agent, task)
        if task.type == "analyze_competitor_pricing":
            return await self._analyze_competitor_pricing(agent, task)
        raise UnknownTaskError(f"Unknown task type: {task.type}")

    def handle_message(self, agent: Agent, message: AgentMessage) -> None:
        if message.type == MessageType.REQUEST and address_of(message.sender) == AgentType.PRODUCT_SCOUT.value:
            logger.info("price_optimizer.products_received", content=message.content)

    # ------------------------------------------------------------------
    async def _optimize_pricing(self, agent: Agent, task: AgentTask) -> Union[PriceAnalysis, List[PriceAnalysis]]:
        products = coerce_products(task.input)
        if not products:
            raise StrategyInputError("No products provided for price optimization")
        strategy = str(option(task, "strategy", "competitive"))
        target_margin = float(option(task, "target_margin", DEFAULT_TARGET_MARGIN))
        with_competitors = bool(option(task, "competitor_analysis", True))

        share = 100 / len(products)
        results = []
        for index, product in enumerate(products):
            results.append(
                await self._analyze(agent, product, strategy, target_margin, with_competitors, index * share, share)
            )
        return results[0] if len(results) == 1 else results

    async def _analyze(
        self,
        agent: Agent,
        product: ScoutedProduct,
        strategy: str,
        target_margin: float,
        with_competitors: bool,
        offset: float,
        share: float,
    ) -> PriceAnalysis:
        def progress(fraction: float) -> None:
            agent.update_progress(int(offset + share * fraction))

        agent.send_message(USER, MessageType.PROGRESS, f'Analyzing pricing for "{product.title}"...')
        progress(0.1)

        competitors: List[CompetitorPrice] = []
        if with_competitors:
            agent.send_message(USER, MessageType.PROGRESS, "Scanning competitor prices...")
            competitors = await self._competitor_prices(product)
            progress(0.3)

        agent.send_message(USER, MessageType.PROGRESS, "Analyzing price trends...")
        history = self._price_history(product)
        progress(0.45)

        agent.send_message(USER, MessageType.PROGRESS, "Calculating optimal price...")
        optimal = self._optimal_price(product, competitors, strategy, target_margin)
        progress(0.6)

        tiers = {
            "economy": PricingTier(
                price=optimal.minimum,
                margin=margin_of(optimal.minimum, product.cost_price),
                expected_sales="High volume, lower profit per unit",
            ),
            "standard": PricingTier(
                price=optimal.recommended,
                margin=margin_of(optimal.recommended, product.cost_price),
                expected_sales="Balanced volume and profit",
            ),
            "premium": PricingTier(
                price=optimal.maximum,
                margin=margin_of(optimal.maximum, product.cost_price),
                expected_sales="Lower volume, higher profit per unit",
            ),
        }
        progress(0.75)

        agent.send_message(USER, MessageType.PROGRESS, "Projecting profit scenarios...")
        projection = self._projection(product, optimal.recommended)
        progress(0.9)

        adjustments = self._dynamic_adjustments(product)
        if any(a.rule == "competitor_undercut" for a in adjustments):
            agent.send_message(
                AgentType.AUTO_PILOT,
                MessageType.ALERT,
                f'Competitor price undercut detected for "{product.title}"',
                data={"product_id": product.id, "optimal_price": optimal.recommended},
            )
        progress(1.0)

        analysis = PriceAnalysis(
            product_id=product.id,
            product_title=product.title,
            current_price=product.suggested_price,
            cost_price=product.cost_price,
            optimal_price=optimal.recommended,
            price_range={"min": optimal.minimum, "max": optimal.maximum},
            competitor_prices=[{"store": c.store, "price": c.total_price} for c in competitors],
            margin={
                "current": margin_of(product.suggested_price, product.cost_price),
                "optimal": margin_of(optimal.recommended, product.cost_price),
                "minimum": margin_of(optimal.minimum, product.cost_price),
                "maximum": margin_of(optimal.maximum, product.cost_price),
            },
            recommendation=self._recommendation(product, optimal, competitors),
            confidence=self._confidence(competitors, history),
            pricing_tiers=tiers,
            profit_projection=projection,
            dynamic_adjustments=adjustments,
            strategy=strategy,
        )
        agent.send_message(
            USER,
            MessageType.INFO,
            f"Price optimization complete! Recommended: ${optimal.recommended:.2f} "
            f"({analysis.margin['optimal']:.1f}% margin)",
        )
        return analysis

    async def _competitor_prices(self, product: ScoutedProduct) -> List[CompetitorPrice]:
        rng = self._rng
        await simulate_call(rng, 0.6, 1.2, scale=self._latency_scale)
        prices = []
        for store in COMPETITOR_STORES:
            price = product.suggested_price * (1 + (rng.random() - 0.5) * 0.4)
            shipping = 0 if rng.random() < 0.5 else rng.randint(3, 12)
            prices.append(
                CompetitorPrice(
                    store=store,
                    price=round(price, 2),
                    shipping=float(shipping),
                    total_price=round(price + shipping, 2),
                    in_stock=rng.random() > 0.2,
                )
            )
        return prices

    def _price_history(self, product: ScoutedProduct) -> List[float]:
        """Thirty-one daily price points around the suggested price."""
        return [
            round(product.suggested_price * (1 + (self._rng.random() - 0.5) * 0.2), 2) for _ in range(31)
        ]

    def _optimal_price(
        self,
        product: ScoutedProduct,
        competitors: List[CompetitorPrice],
        strategy: str,
        target_margin: float,
    ) -> OptimalPrice:
        rng = self._rng
        min_viable = product.cost_price * (1 + target_margin / 100)
        if competitors:
            market = sum(c.total_price for c in competitors) / len(competitors)
        else:
            market = product.suggested_price

        if strategy == "premium":
            price = market * (1.15 + rng.random() * 0.1)
        elif strategy == "competitive":
            price = market * (0.95 + rng.random() * 0.05)
        elif strategy == "value":
            price = market * (0.8 + rng.random() * 0.1)
        elif strategy == "penetration":
            price = max(min_viable * 1.1, market * 0.7)
        elif strategy == "skimming":
            price = market * 1.3
        else:
            price = market

        price = max(price, min_viable)
        return OptimalPrice(
            recommended=round(price, 2),
            minimum=round(max(min_viable, price * 0.85), 2),
            maximum=round(price * 1.25, 2),
        )

    @staticmethod
    def _projection(product: ScoutedProduct, price: float) -> Dict[str, ProfitProjection]:
        daily = product.sold // 30 or 10
        unit_profit = price - product.cost_price
        return {
            period: ProfitProjection(
                sales=daily * days,
                revenue=round(daily * days * price, 2),
                profit=round(daily * days * unit_profit, 2),
            )
            for period, days in (("daily", 1), ("weekly", 7), ("monthly", 30))
        }

    def _dynamic_adjustments(self, product: ScoutedProduct) -> List[PriceAdjustment]:
        adjustments = []
        for rule in self._rules:
            if not rule.enabled:
                continue
            if rule.condition == "stock_low":
                applies = self._rng.random() < 0.3
            elif rule.condition == "competitor_undercut":
                applies = self._rng.random() < 0.4
            elif rule.condition == "high_demand":
                applies = product.sold > 5000
            elif rule.condition == "seasonal":
                applies = self._clock().month in PEAK_MONTHS
            else:
                applies = False
            if applies:
                adjustments.append(
                    PriceAdjustment(rule=rule.condition, adjustment=rule.adjustment, reason=_RULE_REASONS[rule.condition])
                )
        return adjustments

    @staticmethod
    def _recommendation(
        product: ScoutedProduct, optimal: OptimalPrice, competitors: List[CompetitorPrice]
    ) -> str:
        current_margin = margin_of(product.suggested_price, product.cost_price)
        optimal_margin = margin_of(optimal.recommended, product.cost_price)
        diff = optimal.recommended - product.suggested_price

        if abs(diff) < 1:
            text = (
                f"Current price is optimal. Maintain at ${product.suggested_price:.2f} "
                f"for {current_margin:.1f}% margin."
            )
        elif diff > 0:
            text = (
                f"Increase price by ${diff:.2f} to ${optimal.recommended:.2f}. "
                f"This improves margin from {current_margin:.1f}% to {optimal_margin:.1f}%."
            )
        else:
            text = (
                f"Consider reducing price by ${abs(diff):.2f} to ${optimal.recommended:.2f} "
                f"to stay competitive. New margin: {optimal_margin:.1f}%."
            )

        if competitors:
            lowest = min(competitors, key=lambda c: c.total_price)
            if optimal.recommended > lowest.total_price * 1.1:
                text += f" Note: {lowest.store} offers lower price at ${lowest.total_price:.2f}."
        return text

    @staticmethod
    def _confidence(competitors: List[CompetitorPrice], history: List[float]) -> float:
        confidence = 70.0
        if len(competitors) >= 5:
            confidence += 15
        elif len(competitors) >= 3:
            confidence += 10
        elif competitors:
            confidence += 5

        if history:
            mean = sum(history) / len(history)
            variance = sum((p - mean) ** 2 for p in history) / len(history)
            confidence += max(0.0, 15 - variance)
        return min(100.0, max(0.0, confidence))

    # ------------------------------------------------------------------
    async def _analyze_competitor_pricing(self, agent: Agent, task: AgentTask) -> CompetitorPricingReport:
        report = task.input
        if not isinstance(report, CompetitorReport):
            raise StrategyInputError("A competitor report is required for competitor pricing analysis")

        agent.send_message(
            USER, MessageType.PROGRESS, f"Comparing prices across {len(report.competitors)} competitors..."
        )
        agent.update_progress(20)
        await simulate_call(self._rng, 0.6, 1.2, scale=self._latency_scale)

        prices = sorted(
            float(p["price"]) for c in report.competitors for p in c.products if p.get("price") is not None
        )
        if not prices:
            raise StrategyInputError(f"No competitor prices found for {report.niche}")
        agent.update_progress(60)

        average = sum(prices) / len(prices)
        gaps = [
            f"No offers between ${low:.2f} and ${high:.2f}"
            for low, high in zip(prices, prices[1:])
            if high - low > average * 0.15
        ]
        position = str(option(task, "strategy", "competitive"))
        factor = _POSITION_FACTORS.get(position, 1.0)
        agent.update_progress(100)

        return CompetitorPricingReport(
            niche=report.niche,
            competitors=list(report.competitors),
            market_min=prices[0],
            market_max=prices[-1],
            market_avg=round(average, 2),
            price_gaps=gaps,
            recommended_position=position,
            recommended_price=round(average * factor, 2),
        )
