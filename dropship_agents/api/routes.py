"""HTTP API exposing orchestrator capabilities."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from dropship_agents.agents.autopilot import AutoPilotMode
from dropship_agents.core.event_log import EventLog
from dropship_agents.core.models import AgentState, EventType
from dropship_agents.orchestration.orchestrator import Orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def get_event_log(request: Request) -> EventLog:
    return request.app.state.event_log


agents_router = APIRouter(prefix="/agents", tags=["agents"])
tasks_router = APIRouter(prefix="/tasks", tags=["tasks"])
workflows_router = APIRouter(prefix="/workflows", tags=["workflows"])
autopilot_router = APIRouter(prefix="/autopilot", tags=["autopilot"])
events_router = APIRouter(prefix="/events", tags=["events"])


class AgentResponse(BaseModel):
    id: str
    type: str
    name: str
    status: str
    capabilities: List[str]
    tasks_completed: int
    tasks_failed: int
    success_rate: float
    avg_task_time: float
    current_task: Optional[str]
    history_size: int

    @classmethod
    def from_state(cls, state: AgentState) -> "AgentResponse":
        return cls(
            id=state.id,
            type=state.type.value,
            name=state.name,
            status=state.status.value,
            capabilities=state.capabilities,
            tasks_completed=state.stats.tasks_completed,
            tasks_failed=state.stats.tasks_failed,
            success_rate=state.stats.success_rate,
            avg_task_time=state.stats.avg_task_time,
            current_task=state.current_task.description if state.current_task else None,
            history_size=len(state.task_history),
        )


class MessageRequest(BaseModel):
    content: str = Field(..., description="Message text delivered to the agent")
    data: Optional[Dict[str, Any]] = None


class TrendRequest(BaseModel):
    niche: str


class ScoutRequest(BaseModel):
    query: str
    options: Dict[str, Any] = Field(default_factory=dict)


class ProductRequest(BaseModel):
    product: Dict[str, Any] = Field(..., description="Product fields such as title and cost_price")
    options: Dict[str, Any] = Field(default_factory=dict)


class DiscoveryRequest(BaseModel):
    niche: str
    max_products: int = Field(default=10, ge=1)
    target_margin: float = Field(default=30, ge=0, le=100)


class ImportRequest(BaseModel):
    url: str


class NicheRequest(BaseModel):
    niche: str


class StepRequest(BaseModel):
    agent: str
    action: str
    input: Any = None
    options: Dict[str, Any] = Field(default_factory=dict)


class WorkflowCreateRequest(BaseModel):
    name: str
    description: str = ""
    steps: List[StepRequest]


class ModeRequest(BaseModel):
    mode: AutoPilotMode


# ----------------------------------------------------------------------
# Agents
# ----------------------------------------------------------------------
@agents_router.get("", response_model=List[AgentResponse])
async def list_agents(orchestrator: Orchestrator = Depends(get_orchestrator)) -> List[AgentResponse]:
    return [AgentResponse.from_state(state) for state in orchestrator.get_all_agent_states()]


@agents_router.get("/{agent_type}", response_model=AgentResponse)
async def get_agent(agent_type: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> AgentResponse:
    return AgentResponse.from_state(orchestrator.get_agent(agent_type).get_state())


@agents_router.get("/{agent_type}/tasks")
async def get_agent_tasks(agent_type: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(orchestrator.get_agent(agent_type).get_state().task_history)


@agents_router.post("/{agent_type}/pause", response_model=AgentResponse)
async def pause_agent(agent_type: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> AgentResponse:
    orchestrator.pause_agent(agent_type)
    return AgentResponse.from_state(orchestrator.get_agent(agent_type).get_state())


@agents_router.post("/{agent_type}/resume", response_model=AgentResponse)
async def resume_agent(agent_type: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> AgentResponse:
    orchestrator.resume_agent(agent_type)
    return AgentResponse.from_state(orchestrator.get_agent(agent_type).get_state())


@agents_router.post("/{agent_type}/messages", status_code=status.HTTP_202_ACCEPTED)
async def send_message(
    agent_type: str,
    request: MessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Dict[str, str]:
    message = orchestrator.send_to_agent(agent_type, request.content, request.data)
    return {"message_id": message.id}


# ----------------------------------------------------------------------
# Direct calls
# ----------------------------------------------------------------------
@tasks_router.post("/trends")
async def analyze_trends(request: TrendRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(await orchestrator.analyze_trends(request.niche))


@tasks_router.post("/products")
async def scout_products(request: ScoutRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(await orchestrator.scout_products(request.query, request.options))


@tasks_router.post("/content")
async def generate_content(request: ProductRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(await orchestrator.generate_content(request.product, request.options))


@tasks_router.post("/pricing")
async def optimize_price(request: ProductRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(await orchestrator.optimize_price(request.product, request.options))


# ----------------------------------------------------------------------
# Workflows
# ----------------------------------------------------------------------
@workflows_router.get("")
async def list_workflows(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(orchestrator.list_workflows())


@workflows_router.post("", status_code=status.HTTP_201_CREATED)
async def create_workflow(
    request: WorkflowCreateRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Any:
    workflow = orchestrator.create_workflow(
        request.name,
        request.description,
        [step.model_dump() for step in request.steps],
    )
    return jsonable_encoder(workflow)


@workflows_router.get("/{workflow_id}")
async def get_workflow(workflow_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(orchestrator.get_workflow(workflow_id))


@workflows_router.post("/{workflow_id}/execute")
async def execute_workflow(workflow_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    await orchestrator.execute_workflow(workflow_id)
    return jsonable_encoder(orchestrator.get_workflow(workflow_id))


@workflows_router.post("/product-discovery")
async def run_product_discovery(
    request: DiscoveryRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Any:
    result = await orchestrator.run_product_discovery_workflow(
        request.niche,
        {"max_products": request.max_products, "target_margin": request.target_margin},
    )
    return jsonable_encoder(result)


@workflows_router.post("/quick-import")
async def run_quick_import(request: ImportRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(await orchestrator.run_quick_import_workflow(request.url))


@workflows_router.post("/competitor-analysis")
async def run_competitor_analysis(
    request: NicheRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Any:
    return jsonable_encoder(await orchestrator.run_competitor_analysis_workflow(request.niche))


# ----------------------------------------------------------------------
# AutoPilot
# ----------------------------------------------------------------------
@autopilot_router.post("/start")
async def start_autopilot(
    config: Dict[str, Any] = Body(...),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Any:
    # Validation errors surface as AutoPilotConfigError (400) rather than 422.
    return jsonable_encoder(await orchestrator.start_autopilot(config))


@autopilot_router.post("/stop")
async def stop_autopilot(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(await orchestrator.stop_autopilot())


@autopilot_router.get("/state")
async def autopilot_state(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    return jsonable_encoder(orchestrator.autopilot.get_state())


@autopilot_router.put("/mode")
async def set_autopilot_mode(request: ModeRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> Any:
    orchestrator.autopilot.set_mode(request.mode)
    return jsonable_encoder(orchestrator.autopilot.get_state())


@autopilot_router.get("/decisions")
async def list_decisions(
    limit: int = Query(default=50, ge=1, le=500),
    pending: bool = False,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Any:
    autopilot = orchestrator.autopilot
    decisions = autopilot.get_pending_decisions() if pending else autopilot.get_decisions(limit)
    return jsonable_encoder(decisions)


@autopilot_router.post("/decisions/{decision_id}/approve", status_code=status.HTTP_204_NO_CONTENT)
async def approve_decision(decision_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> None:
    if not orchestrator.autopilot.approve_decision(decision_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown decision")


@autopilot_router.delete("/decisions/{decision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reject_decision(decision_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> None:
    if not orchestrator.autopilot.reject_decision(decision_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown decision")


@autopilot_router.delete("/errors", status_code=status.HTTP_204_NO_CONTENT)
async def clear_errors(orchestrator: Orchestrator = Depends(get_orchestrator)) -> None:
    orchestrator.autopilot.clear_errors()


@autopilot_router.get("/report")
async def autopilot_report(
    period: str = Query(default="daily", pattern="^(daily|weekly|monthly)$"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> Any:
    return jsonable_encoder(await orchestrator.autopilot.generate_report(period))


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
@events_router.get("")
async def recent_events(
    limit: int = Query(default=50, ge=1, le=500),
    event_type: Optional[EventType] = Query(default=None, alias="type"),
    event_log: EventLog = Depends(get_event_log),
) -> Any:
    return jsonable_encoder(event_log.recent(limit, event_type))


routers = [agents_router, tasks_router, workflows_router, autopilot_router, events_router]
