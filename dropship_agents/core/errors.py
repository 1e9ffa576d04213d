"""Exception hierarchy raised by the automation core."""
from __future__ import annotations


class DropshipAgentError(Exception):
    """Base class for every error raised by the core."""


class AgentNotFoundError(DropshipAgentError, KeyError):
    """No agent is registered for the requested type."""

    def __init__(self, agent_type: str) -> None:
        super().__init__(f"No agent registered for type '{agent_type}'")
        self.agent_type = agent_type

    def __str__(self) -> str:
        return self.args[0]


class AgentPausedError(DropshipAgentError):
    """The agent is paused and refuses new tasks until resumed."""


class UnknownTaskError(DropshipAgentError):
    """A strategy was asked to perform an action it does not support."""


class TaskTimeoutError(DropshipAgentError):
    """A strategy call exceeded the agent's configured timeout."""


class StrategyInputError(DropshipAgentError, ValueError):
    """The payload handed to a strategy cannot be interpreted."""


class WorkflowNotFoundError(DropshipAgentError, KeyError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id} not found")
        self.workflow_id = workflow_id

    def __str__(self) -> str:
        return self.args[0]


class WorkflowDefinitionError(DropshipAgentError, ValueError):
    """A workflow was created with an invalid step list."""


class AutoPilotConfigError(DropshipAgentError, ValueError):
    """AutoPilot configuration failed validation."""


class AutoPilotNotConfiguredError(DropshipAgentError):
    """An AutoPilot operation needs a configuration that was never supplied."""


class WorkflowStateError(DropshipAgentError):
    """A workflow was asked to run again after it already started."""
