"""Product sourcing strategy: searches supplier catalogs and scores candidates."""
from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any, List, Mapping, Optional
from urllib.parse import urlparse

import structlog

from dropship_agents.agents.base import TaskPlan
from dropship_agents.agents.payloads import option, simulate_call, text_input
from dropship_agents.core.errors import StrategyInputError, UnknownTaskError
from dropship_agents.core.market import ProductScoutResult, ScoutedProduct, TrendReport
from dropship_agents.core.models import (
    USER,
    AgentMessage,
    AgentTask,
    AgentType,
    MessageType,
    TaskPriority,
    address_of,
    new_id,
)
from dropship_agents.services.suppliers import SupplierRegistry, default_suppliers

if TYPE_CHECKING:
    from dropship_agents.agents.base import Agent

logger = structlog.get_logger(__name__)

MIN_SCORE = 60
DEFAULT_MAX_PRODUCTS = 10
DEFAULT_MIN_MARGIN = 30.0
PER_SUPPLIER = 5


def resolve_query(payload: Any) -> str:
    """Pick the search query from a string, a mapping or a trend report."""
    if isinstance(payload, TrendReport):
        if payload.top_opportunities:
            return payload.top_opportunities[0].product
        if payload.trends:
            return payload.trends[0].keyword
        return payload.niche
    query = text_input(payload, "query")
    if query:
        return query
    if isinstance(payload, Mapping):
        trends = payload.get("trends") or []
        if trends:
            first = trends[0]
            keyword = first.get("keyword") if isinstance(first, Mapping) else getattr(first, "keyword", None)
            if keyword:
                return str(keyword)
    return "trending products"


def score_product(product: ScoutedProduct, min_margin: float) -> ScoutedProduct:
    """Score a product 0-100 and fill its pros and cons in place."""
    score = 50.0

    if product.profit_margin >= 50:
        score += 25
    elif product.profit_margin >= 40:
        score += 20
    elif product.profit_margin >= min_margin:
        score += 15
    else:
        score += 5

    score += min(15.0, (product.rating - 4) * 15)

    if product.sold >= 5000:
        score += 10
    elif product.sold >= 1000:
        score += 7
    elif product.sold >= 500:
        score += 5

    if product.competitor_count <= 10:
        score += 10
    elif product.competitor_count <= 25:
        score += 7
    elif product.competitor_count <= 50:
        score += 3

    product.pros = _pros(product)
    product.cons = _cons(product)
    product.score = int(min(100, max(0, round(score))))
    return product


def _pros(product: ScoutedProduct) -> List[str]:
    pros = []
    if product.profit_margin >= 50:
        pros.append("Excellent profit margin")
    if product.rating >= 4.5:
        pros.append("Highly rated by customers")
    if product.sold >= 5000:
        pros.append("Proven seller with high volume")
    if product.competitor_count <= 20:
        pros.append("Low competition")
    if product.supplier == "CJ Dropshipping":
        pros.append("Reliable supplier with fast processing")
    return pros[:3]


def _cons(product: ScoutedProduct) -> List[str]:
    cons = []
    if product.profit_margin < 30:
        cons.append("Thin profit margin")
    if product.rating < 4.3:
        cons.append("Below average ratings")
    if product.competitor_count > 40:
        cons.append("High competition")
    if "15" in product.shipping_time:
        cons.append("Longer shipping time")
    return cons[:2]


class ProductScout:
    """Find and evaluate products across supplier catalogs."""

    name = "ProductScout"
    capabilities = [
        "Search supplier catalogs",
        "Evaluate product quality",
        "Calculate profit margins",
        "Check supplier reliability",
        "Find product alternatives",
    ]
    default_action = "scout_products"

    def __init__(
        self,
        suppliers: Optional[SupplierRegistry] = None,
        rng: Optional[random.Random] = None,
        latency_scale: float = 1.0,
    ) -> None:
        self._suppliers = suppliers or default_suppliers()
        self._rng = rng or random.Random()
        self._latency_scale = latency_scale

    def plan(self, action: str, payload: Any) -> TaskPlan:
        if action == "import_product":
            url = text_input(payload, "url") or "unknown url"
            return TaskPlan(
                description=f"Importing product from: {url}",
                priority=TaskPriority.HIGH,
                thought="Fetching the supplier listing...",
            )
        query = resolve_query(payload)
        return TaskPlan(
            description=f"Scouting products for: {query}",
            priority=TaskPriority.HIGH,
            thought=f'Searching supplier databases for "{query}"...',
        )

    async def perform_task(self, agent: Agent, task: AgentTask) -> Any:
        if task.type == "scout_products":
            return await self._scout_products(agent, task)
        if task.type == "import_product":
            return await self._import_product(agent, task)
        raise UnknownTaskError(f"Unknown task type: {task.type}")

    def handle_message(self, agent: Agent, message: AgentMessage) -> None:
        if message.type == MessageType.REQUEST and address_of(message.sender) == AgentType.TREND_HUNTER.value:
            logger.info("product_scout.trend_data_received", content=message.content)

    # ------------------------------------------------------------------
    async def _scout_products(self, agent: Agent, task: AgentTask) -> ProductScoutResult:
        query = resolve_query(task.input)
        max_products = int(option(task, "max_products", DEFAULT_MAX_PRODUCTS))
        min_margin = float(option(task, "min_profit_margin", DEFAULT_MIN_MARGIN))

        agent.send_message(USER, MessageType.PROGRESS, f'Searching for "{query}" across suppliers...')
        agent.update_progress(10)

        found: List[ScoutedProduct] = []
        suppliers = self._suppliers.all()
        for index, supplier in enumerate(suppliers, start=1):
            agent.send_message(USER, MessageType.PROGRESS, f"Scanning {supplier.name} catalog...")
            found.extend(await supplier.search(query, PER_SUPPLIER, self._rng, self._latency_scale))
            agent.update_progress(10 + int(50 * index / len(suppliers)))

        agent.send_message(USER, MessageType.PROGRESS, "Analyzing and scoring products...")
        scored = sorted(
            (
                product
                for product in (score_product(p, min_margin) for p in found)
                if product.score >= MIN_SCORE and product.profit_margin >= min_margin
            ),
            key=lambda p: p.score,
            reverse=True,
        )[:max_products]
        agent.update_progress(80)

        summary = self._summary(scored, query)
        agent.update_progress(100)
        agent.send_message(USER, MessageType.INFO, f"Found {len(scored)} high-potential products!")

        return ProductScoutResult(
            query=query,
            total_found=len(found),
            products=scored,
            filters={"min_profit": min_margin, "max_products": float(max_products)},
            summary=summary,
        )

    async def _import_product(self, agent: Agent, task: AgentTask) -> ProductScoutResult:
        url = text_input(task.input, "url")
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise StrategyInputError(f"Invalid product URL: {url!r}")

        agent.send_message(USER, MessageType.PROGRESS, f"Fetching listing from {parsed.netloc}...")
        agent.update_progress(20)
        await simulate_call(self._rng, 0.8, 1.6, scale=self._latency_scale)

        supplier = self._suppliers.find_by_url(url)
        supplier_name = supplier.name if supplier else parsed.netloc
        slug = parsed.path.rstrip("/").rsplit("/", 1)[-1] or "imported product"
        title = slug.replace("-", " ").replace("_", " ").strip().title()

        cost_price = float(self._rng.randint(5, 34))
        suggested_price = float(int(cost_price * (2 + self._rng.random())))
        product = ScoutedProduct(
            id=new_id("import"),
            title=title,
            description=f"Imported from {supplier_name}: {title}.",
            source_url=url,
            supplier=supplier_name,
            cost_price=cost_price,
            suggested_price=suggested_price,
            profit_margin=round((suggested_price - cost_price) / suggested_price * 100),
            rating=4 + self._rng.random(),
            reviews=self._rng.randint(100, 5099),
            sold=self._rng.randint(500, 10499),
            shipping_time=f"{self._rng.randint(7, 16)}-{self._rng.randint(15, 24)} days",
            competitor_count=self._rng.randint(5, 54),
        )
        score_product(product, DEFAULT_MIN_MARGIN)
        agent.update_progress(100)
        agent.send_message(USER, MessageType.INFO, f'Imported "{product.title}" ({product.score}/100 score)')

        return ProductScoutResult(
            query=url,
            total_found=1,
            products=[product],
            filters={},
            summary=f'Imported "{product.title}" from {supplier_name} with {product.profit_margin:.0f}% margin.',
        )

    @staticmethod
    def _summary(products: List[ScoutedProduct], query: str) -> str:
        if not products:
            return f'No products meeting criteria found for "{query}". Try adjusting filters.'
        avg_margin = sum(p.profit_margin for p in products) / len(products)
        avg_score = sum(p.score for p in products) / len(products)
        top = products[0]
        return (
            f'Found {len(products)} products for "{query}" with avg {avg_margin:.0f}% margin and '
            f'{avg_score:.0f}/100 score. Top pick: "{top.title}" ({top.score}/100 score, '
            f"{top.profit_margin:.0f}% margin)"
        )
