"""FastAPI entry-point exposing orchestrator controls."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dropship_agents.api.routes import routers
from dropship_agents.config import Config
from dropship_agents.core.errors import (
    AgentNotFoundError,
    AgentPausedError,
    AutoPilotNotConfiguredError,
    DropshipAgentError,
    TaskTimeoutError,
    UnknownTaskError,
    WorkflowNotFoundError,
    WorkflowStateError,
)
from dropship_agents.core.event_log import EventLog
from dropship_agents.observability import configure_logging
from dropship_agents.orchestration.orchestrator import Orchestrator
from dropship_agents.runtime import build_orchestrator

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR = (
    ((AgentNotFoundError, WorkflowNotFoundError), status.HTTP_404_NOT_FOUND),
    ((AgentPausedError, WorkflowStateError, AutoPilotNotConfiguredError), status.HTTP_409_CONFLICT),
    ((TaskTimeoutError,), status.HTTP_504_GATEWAY_TIMEOUT),
    ((UnknownTaskError, ValueError), status.HTTP_400_BAD_REQUEST),
)


def status_for(exc: DropshipAgentError) -> int:
    for error_types, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_types):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(config: Optional[Config] = None, orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    """Build the application; the lifespan owns the orchestrator it creates or receives."""
    config = config or Config.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.log_level, json=config.log_json)
        app.state.orchestrator = orchestrator or build_orchestrator(config)
        app.state.event_log = EventLog()
        unsubscribe = app.state.orchestrator.on(app.state.event_log)
        await app.state.orchestrator.start_all()
        logger.info("app.started", environment=config.environment)
        yield
        await app.state.orchestrator.stop_all()
        unsubscribe()
        logger.info("app.stopped")

    app = FastAPI(title="Dropship Agents", lifespan=lifespan)
    for router in routers:
        app.include_router(router)

    @app.exception_handler(DropshipAgentError)
    async def agent_error_handler(request: Request, exc: DropshipAgentError) -> JSONResponse:
        code = status_for(exc)
        logger.warning("api.request_failed", path=request.url.path, error=str(exc), status=code)
        return JSONResponse(status_code=code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app
