"""Autonomous controller: scheduled scans and policy-gated decisions."""
from __future__ import annotations

import asyncio
import copy
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Literal,
    Mapping,
    Optional,
    Protocol,
    Set,
    Union,
)

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from dropship_agents.agents.base import TaskPlan
from dropship_agents.core.errors import AutoPilotConfigError, AutoPilotNotConfiguredError, StrategyInputError, UnknownTaskError
from dropship_agents.core.market import PriceAnalysis, ProductScoutResult, ScoutedProduct, TrendReport
from dropship_agents.core.models import (
    USER,
    AgentMessage,
    AgentTask,
    EventType,
    MessageType,
    TaskPriority,
    address_of,
    new_id,
    utcnow,
)

if TYPE_CHECKING:
    from dropship_agents.agents.base import Agent

logger = structlog.get_logger(__name__)

HOUR = 60 * 60
DEFAULT_MIN_MARGIN = 30.0
DEFAULT_SCOUT_LIMIT = 5
OPPORTUNITIES_PER_NICHE = 3
LOW_CONVERSION_RATE = 1.5
LOW_PROFIT_MARGIN = 25.0
REPORT_PERIODS = {"daily": timedelta(days=1), "weekly": timedelta(days=7), "monthly": timedelta(days=30)}


class AutoPilotMode(str, Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class DecisionType(str, Enum):
    PUBLISH = "publish"
    PRICE_CHANGE = "price_change"
    REMOVE = "remove"
    RESTOCK = "restock"
    CONTENT_UPDATE = "content_update"


APPROVAL_THRESHOLDS: Dict[AutoPilotMode, int] = {
    AutoPilotMode.CONSERVATIVE: 85,
    AutoPilotMode.BALANCED: 75,
    AutoPilotMode.AGGRESSIVE: 65,
}


class AutoPilotConfig(BaseModel):
    """Settings a caller supplies when starting the AutoPilot."""

    mode: AutoPilotMode
    niches: List[str] = Field(..., min_length=1)
    max_products_per_day: Optional[int] = Field(default=None, ge=1)
    min_profit_margin: Optional[float] = Field(default=None, ge=0, le=100)
    auto_publish: bool = False
    auto_pricing: bool = False
    content_style: Literal["premium", "value", "conversion-focused"] = "conversion-focused"
    exclude_keywords: List[str] = Field(default_factory=list)

    @field_validator("niches")
    @classmethod
    def _strip_niches(cls, niches: List[str]) -> List[str]:
        cleaned = [niche.strip() for niche in niches if niche.strip()]
        if not cleaned:
            raise ValueError("At least one niche must be specified")
        return cleaned

    @property
    def margin_floor(self) -> float:
        return DEFAULT_MIN_MARGIN if self.min_profit_margin is None else self.min_profit_margin


def validate_config(config: Union[AutoPilotConfig, Mapping[str, Any], None]) -> AutoPilotConfig:
    if isinstance(config, AutoPilotConfig):
        return config
    if not isinstance(config, Mapping):
        raise AutoPilotConfigError("AutoPilot configuration must be a mapping")
    try:
        return AutoPilotConfig.model_validate(dict(config))
    except ValidationError as exc:
        raise AutoPilotConfigError(str(exc)) from exc


@dataclass(slots=True)
class AutoPilotSchedule:
    """Repeat intervals in seconds for the three scheduled jobs."""

    trend_scan: float
    price_update: float
    performance_check: float


INTERVALS: Dict[AutoPilotMode, AutoPilotSchedule] = {
    AutoPilotMode.CONSERVATIVE: AutoPilotSchedule(6 * HOUR, 4 * HOUR, 24 * HOUR),
    AutoPilotMode.BALANCED: AutoPilotSchedule(4 * HOUR, 2 * HOUR, 12 * HOUR),
    AutoPilotMode.AGGRESSIVE: AutoPilotSchedule(2 * HOUR, 1 * HOUR, 6 * HOUR),
}


@dataclass(slots=True)
class AutoPilotDecision:
    type: DecisionType
    reason: str
    action: str
    approved: bool
    product: Optional[ScoutedProduct] = None
    result: Any = None
    id: str = field(default_factory=lambda: new_id("decision"))
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class AutoPilotState:
    is_running: bool
    mode: AutoPilotMode
    schedule: AutoPilotSchedule
    last_scan: Optional[datetime] = None
    products_found: int = 0
    products_published: int = 0
    total_profit: float = 0.0
    price_changes: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class PublishedProduct:
    product: ScoutedProduct
    price: float
    pricing: PriceAnalysis
    published_at: datetime


@dataclass(slots=True)
class ReportMetrics:
    products_scanned: int
    products_added: int
    products_removed: int
    price_changes: int
    total_revenue: float
    total_profit: float
    conversion_rate: float


@dataclass(slots=True)
class TopProduct:
    product: str
    sales: int
    profit: float


@dataclass(slots=True)
class AutoPilotReport:
    period: str
    start_date: datetime
    end_date: datetime
    metrics: ReportMetrics
    top_products: List[TopProduct]
    recommendations: List[str]


class MarketOperations(Protocol):
    """Direct agent calls the controller relies on; the orchestrator provides them."""

    async def analyze_trends(self, niche: str) -> TrendReport:
        ...

    async def scout_products(self, query: str, options: Optional[Dict[str, Any]] = None) -> ProductScoutResult:
        ...

    async def generate_content(self, product: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        ...

    async def optimize_price(self, product: Any, options: Optional[Dict[str, Any]] = None) -> Any:
        ...


MetricsSource = Callable[[], Mapping[str, float]]


class AutoPilotController:
    """Timer-driven product discovery with an auditable decision log.

    The controller is the strategy of the ``auto-pilot`` agent. Starting,
    manual scans and reports run as tasks of that agent; scheduled jobs run
    as background asyncio tasks that call back into the orchestrator.
    """

    name = "AutoPilot"
    capabilities = [
        "Fully autonomous operation",
        "Trend monitoring & product discovery",
        "Automatic content generation",
        "Dynamic pricing management",
        "Inventory monitoring",
        "Performance reporting",
        "Smart decision making",
    ]
    default_action = "start_autopilot"

    def __init__(
        self,
        market: MarketOperations,
        *,
        intervals: Optional[Mapping[AutoPilotMode, AutoPilotSchedule]] = None,
        metrics_source: Optional[MetricsSource] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._market = market
        self._intervals = dict(intervals or INTERVALS)
        self._rng = rng or random.Random()
        self._metrics_source = metrics_source or self._simulated_metrics
        self._clock = clock
        self._agent: Optional[Agent] = None
        self._config: Optional[AutoPilotConfig] = None
        self._state = AutoPilotState(
            is_running=False,
            mode=AutoPilotMode.BALANCED,
            schedule=copy.copy(self._intervals[AutoPilotMode.BALANCED]),
        )
        self._decisions: List[AutoPilotDecision] = []
        self._published: Dict[str, PublishedProduct] = {}
        self._published_per_day: Dict[date, int] = {}
        self._products_removed = 0
        self._last_metrics: Dict[str, float] = {}
        self._timers: List[asyncio.Task] = []
        self._jobs: Set[asyncio.Task] = set()
        self._publishing: Set[str] = set()
        self._start_generation = 0
        self._starting = False
        self._log = logger.bind(agent="auto-pilot")

    def bind(self, agent: Agent) -> None:
        """Attach the agent that runs this controller's tasks."""
        self._agent = agent

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            raise RuntimeError("AutoPilotController is not bound to an agent")
        return self._agent

    @property
    def config(self) -> Optional[AutoPilotConfig]:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def start(self, config: Union[AutoPilotConfig, Mapping[str, Any]]) -> AutoPilotState:
        """Validate ``config`` and start; a running controller returns its state unchanged."""
        validated = validate_config(config)
        if self._state.is_running:
            return self.get_state()
        return await self.agent.execute(validated, action="start_autopilot")

    execute = start

    async def stop(self) -> AutoPilotState:
        """Cancel future timer firings; scans already in flight finish on their own."""
        # A start still running its initial scan checks this and stays stopped.
        self._start_generation += 1
        timers = self._cancel_timers()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
        was_active = self._state.is_running or self._starting
        self._state.is_running = False
        if was_active:
            self.agent.send_message(USER, MessageType.INFO, "AutoPilot has been stopped.")
            self.agent.emit(EventType.AUTOPILOT_STOPPED, {"mode": self._state.mode.value})
            self._log.info("autopilot.stopped")
        return self.get_state()

    async def scan_now(self) -> AutoPilotState:
        return await self.agent.execute(action="scan_trends")

    async def generate_report(self, period: str = "daily") -> AutoPilotReport:
        return await self.agent.execute({"period": period}, action="generate_report")

    def get_state(self) -> AutoPilotState:
        return copy.deepcopy(self._state)

    def get_decisions(self, limit: int = 50) -> List[AutoPilotDecision]:
        if limit <= 0:
            return []
        return copy.deepcopy(self._decisions[-limit:])

    def get_pending_decisions(self) -> List[AutoPilotDecision]:
        return copy.deepcopy([d for d in self._decisions if not d.approved])

    def get_published_products(self) -> List[PublishedProduct]:
        return copy.deepcopy(list(self._published.values()))

    def approve_decision(self, decision_id: str) -> bool:
        decision = self._find_decision(decision_id)
        if decision is None:
            return False
        if not decision.approved:
            decision.approved = True
            self._apply(decision)
            self._log.info("autopilot.decision.approved", decision_id=decision_id, decision_type=decision.type.value)
        return True

    def reject_decision(self, decision_id: str) -> bool:
        decision = self._find_decision(decision_id)
        if decision is None:
            return False
        self._decisions.remove(decision)
        self._log.info("autopilot.decision.rejected", decision_id=decision_id, decision_type=decision.type.value)
        return True

    def clear_errors(self) -> None:
        self._state.errors.clear()

    def set_mode(self, mode: Union[AutoPilotMode, str]) -> None:
        try:
            mode = AutoPilotMode(mode)
        except ValueError as exc:
            raise AutoPilotConfigError(f"Unknown AutoPilot mode: {mode}") from exc
        self._state.mode = mode
        self._state.schedule = copy.copy(self._intervals[mode])
        if self._config is not None:
            self._config = self._config.model_copy(update={"mode": mode})
        if self._state.is_running:
            self._cancel_timers()
            self._install_timers()
        self.agent.send_message(USER, MessageType.INFO, f"AutoPilot mode changed to: {mode.value}")

    def make_decision(
        self,
        decision_type: DecisionType,
        product: Optional[ScoutedProduct],
        reason: str,
        *,
        action: Optional[str] = None,
        result: Any = None,
    ) -> AutoPilotDecision:
        """Record a decision approved according to the static per-type policy."""
        decision = AutoPilotDecision(
            type=decision_type,
            product=product,
            reason=reason,
            action=action or self._default_action(decision_type, product),
            approved=self._should_auto_approve(decision_type),
            result=result,
        )
        self._decisions.append(decision)
        if decision.approved:
            self._apply(decision)
        if self._agent is not None:
            self._agent.emit(EventType.DECISION, copy.deepcopy(decision))
        self._log.info(
            "autopilot.decision.created",
            decision_id=decision.id,
            decision_type=decision_type.value,
            approved=decision.approved,
        )
        return decision

    # ------------------------------------------------------------------
    # Strategy contract
    # ------------------------------------------------------------------
    def plan(self, action: str, payload: Any) -> TaskPlan:
        if action == "start_autopilot":
            validate_config(payload)
            return TaskPlan(
                description="Starting AutoPilot mode",
                priority=TaskPriority.CRITICAL,
                thought="Initializing autonomous operations...",
            )
        if action == "scan_trends":
            return TaskPlan(description="Running manual trend scan", priority=TaskPriority.MEDIUM)
        if action == "generate_report":
            period = self._period(payload)
            return TaskPlan(description=f"Generating {period} report", priority=TaskPriority.LOW)
        return TaskPlan(description=action)

    async def perform_task(self, agent: Agent, task: AgentTask) -> Any:
        if task.type == "start_autopilot":
            return await self._start(agent, validate_config(task.input))
        if task.type == "scan_trends":
            if self._config is None:
                raise AutoPilotNotConfiguredError("AutoPilot not configured")
            await self.scan(self._config)
            return self.get_state()
        if task.type == "generate_report":
            return self._report(self._period(task.input))
        raise UnknownTaskError(f"Unknown task type: {task.type}")

    def handle_message(self, agent: Agent, message: AgentMessage) -> None:
        if message.type == MessageType.ALERT:
            self._handle_alert(message)
        elif message.type == MessageType.REQUEST:
            self._log.info("autopilot.request_received", sender=address_of(message.sender), content=message.content)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def _start(self, agent: Agent, config: AutoPilotConfig) -> AutoPilotState:
        if self._state.is_running:
            return self.get_state()

        agent.send_message(USER, MessageType.INFO, "AutoPilot initializing...")
        agent.update_progress(10)
        self._config = config
        self._state.mode = config.mode
        self._state.schedule = copy.copy(self._intervals[config.mode])

        agent.send_message(USER, MessageType.PROGRESS, "Setting up monitoring schedules...")
        self._install_timers()
        agent.update_progress(30)

        agent.send_message(USER, MessageType.PROGRESS, "Running initial market scan...")
        agent.update_progress(50)
        generation = self._start_generation
        self._starting = True
        try:
            await self.scan(config)
        except (Exception, asyncio.CancelledError):
            self._cancel_timers()
            raise
        finally:
            self._starting = False

        if generation != self._start_generation:
            self._cancel_timers()
            self._log.info("autopilot.start_aborted", mode=config.mode.value)
            return self.get_state()

        self._state.is_running = True
        agent.update_progress(100)
        agent.send_message(
            USER,
            MessageType.INFO,
            f"AutoPilot is now active in {config.mode.value} mode. Monitoring {', '.join(config.niches)}.",
        )
        agent.emit(EventType.AUTOPILOT_STARTED, {"mode": config.mode.value, "niches": list(config.niches)})
        self._log.info("autopilot.started", mode=config.mode.value, niches=list(config.niches))
        return self.get_state()

    def _install_timers(self) -> None:
        schedule = self._state.schedule
        self._timers = [
            asyncio.create_task(self._every(schedule.trend_scan, "trend_scan", self._scheduled_scan)),
            asyncio.create_task(self._every(schedule.price_update, "price_update", self.run_price_update)),
            asyncio.create_task(
                self._every(schedule.performance_check, "performance_check", self.run_performance_check)
            ),
        ]

    def _cancel_timers(self) -> List[asyncio.Task]:
        timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        return timers

    async def _every(self, interval: float, job_name: str, job: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval)
            if not self._state.is_running:
                continue
            # Jobs run detached so that stop() never interrupts one already started.
            task = asyncio.create_task(self._run_job(job_name, job))
            self._jobs.add(task)
            task.add_done_callback(self._jobs.discard)

    async def _run_job(self, job_name: str, job: Callable[[], Awaitable[None]]) -> None:
        try:
            await job()
        except Exception as exc:  # noqa: BLE001
            self._state.errors.append(f"Scheduled {job_name} failed: {exc}")
            self._log.exception("autopilot.job_failed", job=job_name)

    async def _scheduled_scan(self) -> None:
        if self._config is None:
            return
        self.agent.send_message(USER, MessageType.PROGRESS, "Running scheduled trend scan...")
        await self.scan(self._config)

    # ------------------------------------------------------------------
    # Scanning and publishing
    # ------------------------------------------------------------------
    async def scan(self, config: AutoPilotConfig) -> None:
        """Scan every niche; a failing niche is recorded and the rest still run."""
        self.agent.emit(EventType.AUTOPILOT_SCAN_STARTED, {"niches": list(config.niches)})
        for niche in config.niches:
            try:
                await self._scan_niche(niche, config)
            except Exception as exc:  # noqa: BLE001
                self._state.errors.append(f"Scan failed for {niche}: {exc}")
                self._log.warning("autopilot.scan.niche_failed", niche=niche, error=str(exc))
        self._state.last_scan = self._clock()
        self.agent.emit(
            EventType.AUTOPILOT_SCAN_COMPLETED,
            {
                "products_found": self._state.products_found,
                "products_published": self._state.products_published,
            },
        )

    async def _scan_niche(self, niche: str, config: AutoPilotConfig) -> None:
        report = await self._market.analyze_trends(niche)
        for opportunity in report.top_opportunities[:OPPORTUNITIES_PER_NICHE]:
            result = await self._market.scout_products(
                opportunity.product,
                {
                    "max_products": config.max_products_per_day or DEFAULT_SCOUT_LIMIT,
                    "min_profit_margin": config.margin_floor,
                },
            )
            self._state.products_found += len(result.products)
            candidates = [p for p in result.products if not self._excluded(p, config)]
            for product in candidates:
                self.agent.emit(
                    EventType.AUTOPILOT_PRODUCT_FOUND,
                    {"product_id": product.id, "title": product.title, "score": product.score},
                )
            if config.auto_publish:
                await self._process_products(candidates, config)

    @staticmethod
    def _excluded(product: ScoutedProduct, config: AutoPilotConfig) -> bool:
        title = product.title.lower()
        return any(keyword.lower() in title for keyword in config.exclude_keywords if keyword)

    async def _process_products(self, products: List[ScoutedProduct], config: AutoPilotConfig) -> None:
        threshold = APPROVAL_THRESHOLDS[config.mode]
        for product in products:
            if product.score < threshold or product.profit_margin < config.margin_floor:
                continue
            if product.id in self._published or product.id in self._publishing:
                continue
            if not self._quota_left(config):
                self._log.info("autopilot.daily_cap_reached", cap=config.max_products_per_day)
                return
            # Reserve before awaiting so overlapping scans see the claim.
            self._publishing.add(product.id)
            try:
                await self._publish(product, config)
            finally:
                self._publishing.discard(product.id)

    def _quota_left(self, config: AutoPilotConfig) -> bool:
        if config.max_products_per_day is None:
            return True
        used = self._published_per_day.get(self._clock().date(), 0) + len(self._publishing)
        return used < config.max_products_per_day

    async def _publish(self, product: ScoutedProduct, config: AutoPilotConfig) -> None:
        try:
            content = await self._market.generate_content(product, {"style": config.content_style})
            pricing = await self._market.optimize_price(product)
        except Exception as exc:  # noqa: BLE001
            self._state.errors.append(f"Failed to publish {product.title}: {exc}")
            self._log.warning("autopilot.publish_failed", product_id=product.id, error=str(exc))
            return

        decision = self.make_decision(
            DecisionType.PUBLISH,
            product,
            f"Score: {product.score}/100, Margin: {product.profit_margin:.0f}%",
            action=f'Published "{product.title}" at ${pricing.optimal_price:.2f}',
            result={"content": content, "pricing": pricing},
        )
        if not decision.approved:
            return

        now = self._clock()
        self._published[product.id] = PublishedProduct(
            product=product, price=pricing.optimal_price, pricing=pricing, published_at=now
        )
        self._published_per_day[now.date()] = self._published_per_day.get(now.date(), 0) + 1
        self._state.products_published += 1
        self._state.total_profit += pricing.profit_projection["monthly"].profit

        self.agent.emit(
            EventType.AUTOPILOT_PRODUCT_ADDED,
            {"product_id": product.id, "title": product.title, "price": pricing.optimal_price},
        )
        self.agent.send_message(
            USER, MessageType.INFO, f'Auto-published: "{product.title}" at ${pricing.optimal_price:.2f}'
        )

    # ------------------------------------------------------------------
    # Scheduled jobs
    # ------------------------------------------------------------------
    async def run_price_update(self) -> None:
        """Re-optimize every published product and propose changes of at least one unit."""
        self.agent.send_message(USER, MessageType.PROGRESS, "Running price optimization check...")
        changed = 0
        for entry in list(self._published.values()):
            try:
                analysis = await self._market.optimize_price(entry.product)
            except Exception as exc:  # noqa: BLE001
                self._state.errors.append(f"Price update failed for {entry.product.title}: {exc}")
                continue
            if abs(analysis.optimal_price - entry.price) < 1:
                continue
            decision = self.make_decision(
                DecisionType.PRICE_CHANGE,
                entry.product,
                f"Optimal price moved from ${entry.price:.2f} to ${analysis.optimal_price:.2f}",
                action=f'Reprice "{entry.product.title}" to ${analysis.optimal_price:.2f}',
                result={"old_price": entry.price, "new_price": analysis.optimal_price, "pricing": analysis},
            )
            if decision.approved:
                changed += 1
        if changed:
            self.agent.send_message(USER, MessageType.INFO, f"Updated prices for {changed} products")

    async def run_performance_check(self) -> None:
        self.agent.send_message(USER, MessageType.PROGRESS, "Running performance analysis...")
        metrics = dict(self._metrics_source())
        self._last_metrics = metrics
        if metrics.get("conversion_rate", LOW_CONVERSION_RATE) < LOW_CONVERSION_RATE:
            self.make_decision(
                DecisionType.CONTENT_UPDATE, None, "Low conversion rate detected - content refresh recommended"
            )
        if metrics.get("profit_margin", LOW_PROFIT_MARGIN) < LOW_PROFIT_MARGIN:
            self.make_decision(
                DecisionType.PRICE_CHANGE, None, "Profit margin below target - price adjustment needed"
            )

    def _simulated_metrics(self) -> Dict[str, float]:
        return {
            "conversion_rate": self._rng.uniform(1, 6),
            "avg_order_value": self._rng.uniform(20, 70),
            "profit_margin": self._rng.uniform(30, 50),
        }

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------
    def _handle_alert(self, message: AgentMessage) -> None:
        content = message.content.lower()
        data = message.data if isinstance(message.data, Mapping) else {}
        entry = self._published.get(str(data.get("product_id", "")))
        product = entry.product if entry else None
        if "low stock" in content:
            self.make_decision(DecisionType.RESTOCK, product, "Low stock alert received", result=message.data)
        elif "competitor price" in content:
            self.make_decision(
                DecisionType.PRICE_CHANGE, product, "Competitor price change detected", result=message.data
            )

    def _should_auto_approve(self, decision_type: DecisionType) -> bool:
        config = self._config
        if config is None:
            return False
        if decision_type == DecisionType.PUBLISH:
            return config.auto_publish
        if decision_type == DecisionType.PRICE_CHANGE:
            return config.auto_pricing
        return decision_type == DecisionType.CONTENT_UPDATE

    @staticmethod
    def _default_action(decision_type: DecisionType, product: Optional[ScoutedProduct]) -> str:
        if decision_type == DecisionType.PUBLISH:
            return f'Publish "{product.title}"' if product else "Publish new product"
        if decision_type == DecisionType.PRICE_CHANGE:
            return "Adjust product pricing"
        if decision_type == DecisionType.REMOVE:
            return f'Remove "{product.title}"' if product else "Remove underperforming product"
        if decision_type == DecisionType.RESTOCK:
            return "Contact supplier for restocking"
        return "Refresh product content"

    def _apply(self, decision: AutoPilotDecision) -> None:
        """Side effects of an approved decision on the published catalog."""
        product_id = decision.product.id if decision.product else None
        entry = self._published.get(product_id) if product_id else None
        if decision.type == DecisionType.PRICE_CHANGE and entry and isinstance(decision.result, Mapping):
            new_price = decision.result.get("new_price")
            if new_price is not None:
                entry.price = float(new_price)
                self._state.price_changes += 1
        elif decision.type == DecisionType.REMOVE and entry:
            del self._published[product_id]
            self._products_removed += 1

    def _find_decision(self, decision_id: str) -> Optional[AutoPilotDecision]:
        return next((d for d in self._decisions if d.id == decision_id), None)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    @staticmethod
    def _period(payload: Any) -> str:
        period = payload.get("period", "daily") if isinstance(payload, Mapping) else (payload or "daily")
        if period not in REPORT_PERIODS:
            raise StrategyInputError(f"Unknown report period: {period}")
        return period

    def _report(self, period: str) -> AutoPilotReport:
        end = self._clock()
        published = list(self._published.values())
        projections = [entry.pricing.profit_projection[period] for entry in published]
        ranked = sorted(published, key=lambda e: e.pricing.profit_projection[period].profit, reverse=True)
        return AutoPilotReport(
            period=period,
            start_date=end - REPORT_PERIODS[period],
            end_date=end,
            metrics=ReportMetrics(
                products_scanned=self._state.products_found,
                products_added=self._state.products_published,
                products_removed=self._products_removed,
                price_changes=self._state.price_changes,
                total_revenue=round(sum(p.revenue for p in projections), 2),
                total_profit=round(sum(p.profit for p in projections), 2),
                conversion_rate=round(self._last_metrics.get("conversion_rate", 0.0), 2),
            ),
            top_products=[
                TopProduct(
                    product=entry.product.title,
                    sales=entry.pricing.profit_projection[period].sales,
                    profit=entry.pricing.profit_projection[period].profit,
                )
                for entry in ranked[:3]
            ],
            recommendations=self._recommendations(),
        )

    def _recommendations(self) -> List[str]:
        recommendations = []
        if self._state.products_published < 5:
            recommendations.append("Consider expanding to more niches for higher product discovery")
        if self._state.errors:
            recommendations.append(f"Address {len(self._state.errors)} errors that occurred during operation")
        if self._state.mode == AutoPilotMode.CONSERVATIVE:
            recommendations.append("Switch to balanced mode for more aggressive product discovery")
        if any(not d.approved for d in self._decisions):
            recommendations.append("Review and approve pending decisions in the queue")
        recommendations.append("Update niche keywords based on seasonal trends")
        return recommendations
