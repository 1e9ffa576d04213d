"""Agent runtime: task/state machine shared by every agent type."""
from __future__ import annotations

import asyncio
import copy
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Protocol, runtime_checkable

import structlog

from dropship_agents.core.errors import AgentPausedError, TaskTimeoutError
from dropship_agents.core.event_bus import EventBus, EventHandler, Unsubscribe
from dropship_agents.core.models import (
    BROADCAST,
    USER,
    AgentEvent,
    AgentMessage,
    AgentSettings,
    AgentState,
    AgentStats,
    AgentStatus,
    AgentTask,
    AgentType,
    EventType,
    MessageType,
    TaskPriority,
    TaskStatus,
    new_id,
    utcnow,
)

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class TaskPlan:
    """How a strategy describes a task before it runs."""

    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    thought: Optional[str] = None


@runtime_checkable
class TaskStrategy(Protocol):
    """Behaviour plugged into an :class:`Agent` for one agent type."""

    name: str
    capabilities: List[str]
    default_action: str

    def plan(self, action: str, payload: Any) -> TaskPlan:
        ...

    async def perform_task(self, agent: "Agent", task: AgentTask) -> Any:
        ...

    def handle_message(self, agent: "Agent", message: AgentMessage) -> None:
        ...


class Agent:
    """Named unit executing one task at a time through its strategy."""

    def __init__(
        self,
        agent_type: AgentType,
        strategy: TaskStrategy,
        settings: Optional[AgentSettings] = None,
    ) -> None:
        self.agent_type = agent_type
        self.strategy = strategy
        self.settings = settings or AgentSettings()
        self.id = new_id(f"agent-{agent_type.value}")
        self.name = strategy.name
        self.capabilities = list(strategy.capabilities)
        self.status = AgentStatus.IDLE
        self.current_task: Optional[AgentTask] = None
        self.task_history: List[AgentTask] = []
        self.stats = AgentStats()
        self.messages: Deque[AgentMessage] = deque(maxlen=self.settings.message_log_size)
        self._bus = EventBus(name=agent_type.value)
        # max_concurrent_tasks is fixed at one; the lock serialises execute().
        self._task_lock = asyncio.Lock()
        self._log = logger.bind(agent=agent_type.value)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def get_state(self) -> AgentState:
        """Deep-copied snapshot; mutating it never touches the agent."""
        return AgentState(
            id=self.id,
            type=self.agent_type,
            name=self.name,
            status=self.status,
            capabilities=list(self.capabilities),
            stats=copy.deepcopy(self.stats),
            current_task=copy.deepcopy(self.current_task),
            task_history=copy.deepcopy(self.task_history),
            messages=copy.deepcopy(list(self.messages)),
        )

    def set_status(self, status: AgentStatus) -> None:
        self.status = status
        self.emit(EventType.STATUS_CHANGED, {"status": status.value})

    @property
    def is_paused(self) -> bool:
        return self.status == AgentStatus.PAUSED

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, handler: EventHandler) -> Unsubscribe:
        return self._bus.subscribe(handler)

    def emit(self, event_type: EventType, data: Any = None) -> None:
        self._bus.publish(AgentEvent(type=event_type, agent=self.agent_type, data=data))

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------
    def send_message(
        self,
        to: Any,
        message_type: MessageType,
        content: str,
        data: Any = None,
    ) -> AgentMessage:
        message = AgentMessage(
            sender=self.agent_type,
            recipient=to,
            type=message_type,
            content=content,
            data=data,
        )
        self.messages.append(message)
        self.emit(EventType.MESSAGE, message)
        return message

    def receive_message(self, message: AgentMessage) -> None:
        self.messages.append(message)
        self.strategy.handle_message(self, message)

    # ------------------------------------------------------------------
    # Task execution
    # ------------------------------------------------------------------
    async def execute(
        self,
        payload: Any = None,
        action: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Run one task through the strategy and return its result.

        Calls are serialised per agent, so at most one non-terminal task is
        ever attached to ``current_task``. Failures are archived as failed
        tasks and re-raised unchanged.
        """
        if self.is_paused:
            raise AgentPausedError(f"{self.name} is paused")

        action = action or self.strategy.default_action
        plan = self.strategy.plan(action, payload)

        async with self._task_lock:
            if self.is_paused:
                raise AgentPausedError(f"{self.name} is paused")
            task = AgentTask(
                type=action,
                description=plan.description,
                priority=plan.priority,
                input=payload,
                options=dict(options or {}),
            )
            return await self._run_task(task, plan.thought)

    async def think(self, thought: str) -> None:
        """Make a reasoning phase visible to observers before work starts."""
        self.set_status(AgentStatus.THINKING)
        self.send_message(USER, MessageType.INFO, f"Thinking: {thought}")
        await asyncio.sleep(self.settings.think_delay)

    async def _run_task(self, task: AgentTask, thought: Optional[str] = None) -> Any:
        task.status = TaskStatus.IN_PROGRESS
        task.started_at = utcnow()
        self.current_task = task
        started = time.perf_counter()

        self.emit(EventType.TASK_STARTED, {"task_id": task.id, "description": task.description})
        self._log.debug("agent.task.started", task_id=task.id, task_type=task.type)

        try:
            if thought:
                await self.think(thought)
            if not self.is_paused:
                self.set_status(AgentStatus.WORKING)
            result = await self._call_strategy(task)
        except (Exception, asyncio.CancelledError) as exc:
            task.status = TaskStatus.FAILED
            task.completed_at = utcnow()
            task.error = str(exc) or exc.__class__.__name__
            self._archive(task, success=False, duration_ms=(time.perf_counter() - started) * 1000)

            self.emit(EventType.TASK_FAILED, {"task_id": task.id, "error": task.error})
            self._log.warning(
                "agent.task.failed",
                task_id=task.id,
                task_type=task.type,
                error=task.error,
            )
            if not self.is_paused:
                self.set_status(AgentStatus.ERROR)
            raise

        task.status = TaskStatus.COMPLETED
        task.completed_at = utcnow()
        task.result = result
        task.progress = 100
        self._archive(task, success=True, duration_ms=(time.perf_counter() - started) * 1000)

        self.emit(EventType.TASK_COMPLETED, {"task_id": task.id, "result": result})
        self._log.info("agent.task.completed", task_id=task.id, task_type=task.type)
        if not self.is_paused:
            self.set_status(AgentStatus.IDLE)
        return result

    async def _call_strategy(self, task: AgentTask) -> Any:
        timeout = self.settings.timeout
        if not timeout:
            return await self.strategy.perform_task(self, task)
        try:
            return await asyncio.wait_for(self.strategy.perform_task(self, task), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise TaskTimeoutError(
                f"{self.name} task '{task.type}' timed out after {timeout:g}s"
            ) from exc

    def update_progress(self, progress: int) -> None:
        task = self.current_task
        if task is None or task.status != TaskStatus.IN_PROGRESS:
            return
        task.progress = max(task.progress, min(100, max(0, int(progress))))
        self.emit(EventType.TASK_PROGRESS, {"task_id": task.id, "progress": task.progress})

    def _archive(self, task: AgentTask, *, success: bool, duration_ms: float) -> None:
        stats = self.stats
        if success:
            stats.tasks_completed += 1
        else:
            stats.tasks_failed += 1
        total = stats.tasks_completed + stats.tasks_failed
        stats.success_rate = stats.tasks_completed / total * 100
        stats.avg_task_time = (stats.avg_task_time * (total - 1) + duration_ms) / total

        self.task_history.append(task)
        self.current_task = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        self.set_status(AgentStatus.IDLE)
        self.send_message(BROADCAST, MessageType.INFO, f"{self.name} is now online and ready.")

    async def stop(self) -> None:
        self.set_status(AgentStatus.IDLE)
        self.send_message(BROADCAST, MessageType.INFO, f"{self.name} is shutting down.")

    def pause(self) -> None:
        self.set_status(AgentStatus.PAUSED)

    def resume(self) -> None:
        self.set_status(AgentStatus.IDLE)

    def __repr__(self) -> str:
        return f"Agent(type={self.agent_type.value!r}, status={self.status.value!r})"
