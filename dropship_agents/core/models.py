"""Core data models shared across orchestrator components."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

ORCHESTRATOR = "orchestrator"
BROADCAST = "all"
USER = "user"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def address_of(value: Any) -> str:
    """Plain string address for an agent type or a literal target."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class AgentType(str, Enum):
    """Closed set of agent roles known to the orchestrator."""

    ORCHESTRATOR = "orchestrator"
    TREND_HUNTER = "trend-hunter"
    PRODUCT_SCOUT = "product-scout"
    CONTENT_MASTER = "content-master"
    PRICE_OPTIMIZER = "price-optimizer"
    COMPETITOR_SPY = "competitor-spy"
    AUTO_PILOT = "auto-pilot"


class AgentStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    WORKING = "working"
    COMPLETED = "completed"
    ERROR = "error"
    PAUSED = "paused"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskPriority(str, Enum):
    """Advisory only; tasks are never preempted."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MessageType(str, Enum):
    INFO = "info"
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"
    PROGRESS = "progress"
    ALERT = "alert"


class EventType(str, Enum):
    """Kinds of events broadcast on agent and orchestrator buses."""

    STATUS_CHANGED = "agent:status_changed"
    TASK_STARTED = "agent:task_started"
    TASK_PROGRESS = "agent:task_progress"
    TASK_COMPLETED = "agent:task_completed"
    TASK_FAILED = "agent:task_failed"
    MESSAGE = "agent:message"
    DECISION = "agent:decision"
    WORKFLOW_STARTED = "workflow:started"
    WORKFLOW_STEP_COMPLETED = "workflow:step_completed"
    WORKFLOW_COMPLETED = "workflow:completed"
    WORKFLOW_FAILED = "workflow:failed"
    AUTOPILOT_STARTED = "autopilot:started"
    AUTOPILOT_STOPPED = "autopilot:stopped"
    AUTOPILOT_SCAN_STARTED = "autopilot:scan_started"
    AUTOPILOT_SCAN_COMPLETED = "autopilot:scan_completed"
    AUTOPILOT_PRODUCT_FOUND = "autopilot:product_found"
    AUTOPILOT_PRODUCT_ADDED = "autopilot:product_added"


@dataclass(slots=True)
class AgentSettings:
    """Per-agent runtime configuration.

    ``timeout`` is in seconds and enforced around every strategy call;
    ``None`` disables it. ``retry_attempts`` is recorded for callers but
    the runtime never retries a failed task.
    """

    enabled: bool = True
    auto_start: bool = False
    max_concurrent_tasks: int = 1
    retry_attempts: int = 3
    timeout: Optional[float] = 60.0
    think_delay: float = 0.5
    message_log_size: int = 100


@dataclass(slots=True)
class AgentMessage:
    """Message exchanged between agents, the orchestrator and the user."""

    sender: str
    recipient: str
    type: MessageType
    content: str
    data: Any = None
    id: str = field(default_factory=lambda: new_id("msg"))
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class AgentTask:
    """One bounded unit of work performed by an agent."""

    type: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    input: Any = None
    options: Dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    id: str = field(default_factory=lambda: new_id("task"))
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass(slots=True)
class AgentStats:
    tasks_completed: int = 0
    tasks_failed: int = 0
    avg_task_time: float = 0.0
    success_rate: float = 100.0


@dataclass(slots=True)
class AgentState:
    """Point-in-time snapshot of an agent handed to external callers."""

    id: str
    type: AgentType
    name: str
    status: AgentStatus
    capabilities: List[str]
    stats: AgentStats
    current_task: Optional[AgentTask] = None
    task_history: List[AgentTask] = field(default_factory=list)
    messages: List[AgentMessage] = field(default_factory=list)


@dataclass(slots=True)
class AgentEvent:
    type: EventType
    data: Any = None
    agent: Optional[AgentType] = None
    timestamp: datetime = field(default_factory=utcnow)


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


@dataclass(slots=True)
class StepDefinition:
    """Template for one workflow step before it is instantiated."""

    agent: AgentType
    action: str
    input: Any = None
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class WorkflowStep:
    agent: AgentType
    action: str
    input: Any = None
    options: Dict[str, Any] = field(default_factory=dict)
    output: Any = None
    status: StepStatus = StepStatus.PENDING
    duration: Optional[float] = None
    error: Optional[str] = None
    id: str = field(default_factory=lambda: new_id("step"))


@dataclass(slots=True)
class Workflow:
    name: str
    description: str
    steps: List[WorkflowStep]
    status: WorkflowStatus = WorkflowStatus.IDLE
    current_step: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
    id: str = field(default_factory=lambda: new_id("workflow"))
