"""Sequential workflow engine chaining agent invocations."""
from __future__ import annotations

import asyncio
import copy
import time
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, Iterable, List, Mapping, Union

import structlog

from dropship_agents.core.errors import (
    AgentNotFoundError,
    WorkflowDefinitionError,
    WorkflowNotFoundError,
    WorkflowStateError,
)
from dropship_agents.core.models import (
    AgentEvent,
    AgentType,
    EventType,
    StepDefinition,
    StepStatus,
    Workflow,
    WorkflowStatus,
    WorkflowStep,
    utcnow,
)

if TYPE_CHECKING:
    from dropship_agents.agents.base import Agent

logger = structlog.get_logger(__name__)

StepLike = Union[StepDefinition, Mapping[str, Any]]


def _definition(step: StepLike, index: int) -> StepDefinition:
    if isinstance(step, StepDefinition):
        return step
    if not isinstance(step, Mapping):
        raise WorkflowDefinitionError(f"Step {index} must be a StepDefinition or a mapping")
    try:
        agent = AgentType(step["agent"])
        action = str(step["action"])
    except KeyError as exc:
        raise WorkflowDefinitionError(f"Step {index} is missing {exc.args[0]!r}") from exc
    except ValueError as exc:
        raise WorkflowDefinitionError(f"Step {index} names an unknown agent: {step['agent']!r}") from exc
    return StepDefinition(agent=agent, action=action, input=step.get("input"), options=dict(step.get("options") or {}))


class WorkflowEngine:
    """Create and run workflows; one step at a time, no retries, no branches."""

    def __init__(
        self,
        resolve_agent: Callable[[AgentType], Agent],
        publish: Callable[[AgentEvent], None],
        history_limit: int = 50,
    ) -> None:
        self._resolve_agent = resolve_agent
        self._publish = publish
        self._active: Dict[str, Workflow] = {}
        self._history: Deque[Workflow] = deque(maxlen=history_limit)

    def create_workflow(self, name: str, description: str, steps: Iterable[StepLike]) -> Workflow:
        definitions = [_definition(step, index) for index, step in enumerate(steps)]
        if not definitions:
            raise WorkflowDefinitionError("A workflow needs at least one step")
        if definitions[0].input is None:
            raise WorkflowDefinitionError("The first workflow step must carry an explicit input")
        for definition in definitions:
            try:
                self._resolve_agent(definition.agent)
            except AgentNotFoundError as exc:
                raise WorkflowDefinitionError(str(exc)) from exc

        workflow = Workflow(
            name=name,
            description=description,
            steps=[
                WorkflowStep(
                    agent=d.agent,
                    action=d.action,
                    input=d.input,
                    options=dict(d.options or {}),
                )
                for d in definitions
            ],
        )
        self._active[workflow.id] = workflow
        logger.debug("workflow.created", workflow_id=workflow.id, name=name, steps=len(definitions))
        return copy.deepcopy(workflow)

    async def execute_workflow(self, workflow_id: str) -> Any:
        """Run every step in order and return the last step's output.

        A failing step fails the workflow, leaves the remaining steps pending
        and re-raises the original exception.
        """
        workflow = self._active.get(workflow_id)
        if workflow is None:
            if any(w.id == workflow_id for w in self._history):
                raise WorkflowStateError(f"Workflow {workflow_id} has already run")
            raise WorkflowNotFoundError(workflow_id)
        if workflow.status != WorkflowStatus.IDLE:
            raise WorkflowStateError(f"Workflow {workflow_id} is already {workflow.status.value}")

        workflow.status = WorkflowStatus.RUNNING
        workflow.started_at = utcnow()
        self._emit(EventType.WORKFLOW_STARTED, {"workflow_id": workflow.id, "name": workflow.name})
        logger.info("workflow.started", workflow_id=workflow.id, name=workflow.name)

        previous_output: Any = None
        try:
            for index, step in enumerate(workflow.steps):
                workflow.current_step = index
                previous_output = await self._run_step(workflow, index, step, previous_output)
        except (Exception, asyncio.CancelledError) as exc:
            workflow.status = WorkflowStatus.FAILED
            workflow.completed_at = utcnow()
            workflow.error = str(exc) or exc.__class__.__name__
            self._emit(
                EventType.WORKFLOW_FAILED,
                {"workflow_id": workflow.id, "step_id": workflow.steps[workflow.current_step].id, "error": workflow.error},
            )
            logger.warning("workflow.failed", workflow_id=workflow.id, step=workflow.current_step, error=workflow.error)
            self._archive(workflow)
            raise

        workflow.status = WorkflowStatus.COMPLETED
        workflow.completed_at = utcnow()
        workflow.result = previous_output
        self._emit(EventType.WORKFLOW_COMPLETED, {"workflow_id": workflow.id, "result": workflow.result})
        logger.info("workflow.completed", workflow_id=workflow.id, name=workflow.name)
        self._archive(workflow)
        return workflow.result

    async def _run_step(self, workflow: Workflow, index: int, step: WorkflowStep, previous_output: Any) -> Any:
        if step.input is None and index > 0:
            step.input = previous_output
        step.status = StepStatus.RUNNING
        started = time.perf_counter()
        try:
            agent = self._resolve_agent(step.agent)
            output = await agent.execute(step.input, action=step.action, options=step.options)
        except (Exception, asyncio.CancelledError) as exc:
            step.status = StepStatus.FAILED
            step.error = str(exc) or exc.__class__.__name__
            step.duration = (time.perf_counter() - started) * 1000
            raise

        step.output = output
        step.status = StepStatus.COMPLETED
        step.duration = (time.perf_counter() - started) * 1000
        self._emit(
            EventType.WORKFLOW_STEP_COMPLETED,
            {
                "workflow_id": workflow.id,
                "step_id": step.id,
                "index": index,
                "agent": step.agent.value,
                "action": step.action,
            },
        )
        return output

    def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = self._active.get(workflow_id)
        if workflow is None:
            workflow = next((w for w in self._history if w.id == workflow_id), None)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return copy.deepcopy(workflow)

    def list_workflows(self) -> List[Workflow]:
        return copy.deepcopy(list(self._active.values()) + list(self._history))

    def _archive(self, workflow: Workflow) -> None:
        self._active.pop(workflow.id, None)
        self._history.append(workflow)

    def _emit(self, event_type: EventType, data: Any) -> None:
        self._publish(AgentEvent(type=event_type, data=data))
