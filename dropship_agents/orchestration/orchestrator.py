"""Orchestrator owning the agent registry, event fan-in and workflows."""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from dropship_agents.agents.autopilot import AutoPilotConfig, AutoPilotController, AutoPilotState
from dropship_agents.agents.base import Agent
from dropship_agents.core.errors import AgentNotFoundError
from dropship_agents.core.event_bus import EventBus, EventHandler, Unsubscribe
from dropship_agents.core.market import PriceAnalysis, ProductScoutResult, TrendReport
from dropship_agents.core.message_bus import MessageRouter
from dropship_agents.core.models import (
    ORCHESTRATOR,
    AgentEvent,
    AgentMessage,
    AgentState,
    AgentType,
    EventType,
    MessageType,
    Workflow,
)
from dropship_agents.orchestration.templates import (
    competitor_analysis_steps,
    product_discovery_steps,
    quick_import_steps,
)
from dropship_agents.orchestration.workflow import StepLike, WorkflowEngine

if TYPE_CHECKING:
    from dropship_agents.core.market import GeneratedContent

logger = structlog.get_logger(__name__)

AgentFactory = Callable[["Orchestrator"], Agent]


class Orchestrator:
    """Coordinate agents, route their messages and run workflows.

    Agents are built once, at construction, from ``catalog``; the registry
    never changes afterwards. Every agent event is re-published on the
    orchestrator bus and ``agent:message`` events are routed to recipients.
    """

    def __init__(
        self,
        catalog: Mapping[AgentType, AgentFactory],
        *,
        router: Optional[MessageRouter] = None,
        workflow_history: int = 50,
    ) -> None:
        self._bus = EventBus(name=ORCHESTRATOR)
        self._router = router or MessageRouter()
        self._agents: Dict[AgentType, Agent] = {}
        self._subscriptions: List[Unsubscribe] = []
        self._workflows = WorkflowEngine(self.get_agent, self._bus.publish, history_limit=workflow_history)

        for agent_type, factory in catalog.items():
            agent = factory(self)
            self._agents[agent_type] = agent
            self._router.register(agent_type.value, agent)
            self._subscriptions.append(agent.on(self._forward))
        logger.info("orchestrator.initialized", agents=[t.value for t in self._agents])

    def _forward(self, event: AgentEvent) -> None:
        self._bus.publish(event)
        if event.type == EventType.MESSAGE and isinstance(event.data, AgentMessage):
            self._router.route(event.data)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------
    def get_agent(self, agent_type: Union[AgentType, str]) -> Agent:
        try:
            agent = self._agents.get(AgentType(agent_type))
        except ValueError:
            agent = None
        if agent is None:
            raise AgentNotFoundError(str(getattr(agent_type, "value", agent_type)))
        return agent

    def has_agent(self, agent_type: Union[AgentType, str]) -> bool:
        try:
            return AgentType(agent_type) in self._agents
        except ValueError:
            return False

    def get_all_agent_states(self) -> List[AgentState]:
        return [agent.get_state() for agent in self._agents.values()]

    def agent_types(self) -> Iterable[AgentType]:
        return tuple(self._agents)

    def on(self, handler: EventHandler) -> Unsubscribe:
        return self._bus.subscribe(handler)

    def send_to_agent(self, agent_type: Union[AgentType, str], content: str, data: Any = None) -> AgentMessage:
        """Deliver a request from the orchestrator to one agent."""
        agent = self.get_agent(agent_type)
        message = AgentMessage(
            sender=ORCHESTRATOR,
            recipient=agent.agent_type.value,
            type=MessageType.REQUEST,
            content=content,
            data=data,
        )
        self._bus.publish(AgentEvent(type=EventType.MESSAGE, data=message))
        self._router.route(message)
        return message

    def pause_agent(self, agent_type: Union[AgentType, str]) -> None:
        self.get_agent(agent_type).pause()

    def resume_agent(self, agent_type: Union[AgentType, str]) -> None:
        self.get_agent(agent_type).resume()

    # ------------------------------------------------------------------
    # Direct agent calls
    # ------------------------------------------------------------------
    async def analyze_trends(self, niche: str) -> TrendReport:
        return await self.get_agent(AgentType.TREND_HUNTER).execute({"niche": niche}, action="analyze_trends")

    async def scout_products(self, query: Any, options: Optional[Dict[str, Any]] = None) -> ProductScoutResult:
        return await self.get_agent(AgentType.PRODUCT_SCOUT).execute(query, action="scout_products", options=options)

    async def generate_content(
        self, product: Any, options: Optional[Dict[str, Any]] = None
    ) -> Union[GeneratedContent, List[GeneratedContent]]:
        return await self.get_agent(AgentType.CONTENT_MASTER).execute(
            product, action="generate_content", options=options
        )

    async def optimize_price(
        self, product: Any, options: Optional[Dict[str, Any]] = None
    ) -> Union[PriceAnalysis, List[PriceAnalysis]]:
        return await self.get_agent(AgentType.PRICE_OPTIMIZER).execute(
            product, action="optimize_pricing", options=options
        )

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------
    def create_workflow(self, name: str, description: str, steps: Iterable[StepLike]) -> Workflow:
        return self._workflows.create_workflow(name, description, steps)

    async def execute_workflow(self, workflow_id: str) -> Any:
        return await self._workflows.execute_workflow(workflow_id)

    def get_workflow(self, workflow_id: str) -> Workflow:
        return self._workflows.get_workflow(workflow_id)

    def list_workflows(self) -> List[Workflow]:
        return self._workflows.list_workflows()

    async def run_product_discovery_workflow(self, niche: str, options: Optional[Dict[str, Any]] = None) -> Any:
        options = options or {}
        workflow = self.create_workflow(
            "Product Discovery",
            f"Find and prepare winning products in {niche}",
            product_discovery_steps(
                niche,
                max_products=int(options.get("max_products", 10)),
                target_margin=float(options.get("target_margin", 30)),
            ),
        )
        return await self.execute_workflow(workflow.id)

    async def run_quick_import_workflow(self, url: str) -> Any:
        workflow = self.create_workflow("Quick Import", f"Import and list {url}", quick_import_steps(url))
        return await self.execute_workflow(workflow.id)

    async def run_competitor_analysis_workflow(self, niche: str) -> Any:
        workflow = self.create_workflow(
            "Competitor Analysis", f"Analyze competitors in {niche}", competitor_analysis_steps(niche)
        )
        return await self.execute_workflow(workflow.id)

    # ------------------------------------------------------------------
    # AutoPilot
    # ------------------------------------------------------------------
    @property
    def autopilot(self) -> AutoPilotController:
        strategy = self.get_agent(AgentType.AUTO_PILOT).strategy
        if not isinstance(strategy, AutoPilotController):
            raise AgentNotFoundError(AgentType.AUTO_PILOT.value)
        return strategy

    async def start_autopilot(self, config: Union[AutoPilotConfig, Mapping[str, Any]]) -> AutoPilotState:
        return await self.autopilot.start(config)

    async def stop_autopilot(self) -> AutoPilotState:
        return await self.autopilot.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start_all(self) -> None:
        agents = [agent for agent in self._agents.values() if agent.settings.enabled]
        await asyncio.gather(*(agent.start() for agent in agents))

    async def stop_all(self) -> None:
        """Stop the AutoPilot timers and every agent."""
        autopilot = self._agents.get(AgentType.AUTO_PILOT)
        if autopilot is not None and isinstance(autopilot.strategy, AutoPilotController):
            await autopilot.strategy.stop()
        results = await asyncio.gather(*(agent.stop() for agent in self._agents.values()), return_exceptions=True)
        for agent_type, result in zip(self._agents, results):
            if isinstance(result, Exception):
                logger.warning("orchestrator.agent_stop_failed", agent=agent_type.value, error=str(result))

    def close(self) -> None:
        """Detach from every agent bus."""
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
