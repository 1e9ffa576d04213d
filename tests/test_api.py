"""HTTP API tests driven through FastAPI's TestClient."""
from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import fast_config
from dropship_agents.core.errors import AgentPausedError, AutoPilotConfigError, TaskTimeoutError, WorkflowStateError
from dropship_agents.main import create_app, status_for
from dropship_agents.runtime import build_orchestrator
from dropship_agents.services.llm_pool import LLMPool


@pytest.fixture
def client() -> Iterator[TestClient]:
    config = fast_config()
    app = create_app(config, build_orchestrator(config, llm_pool=LLMPool()))
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_list_and_get_agents(client: TestClient) -> None:
    response = client.get("/agents")
    assert response.status_code == 200
    types = {agent["type"] for agent in response.json()}
    assert types == {"trend-hunter", "product-scout", "content-master", "price-optimizer", "auto-pilot"}

    agent = client.get("/agents/trend-hunter").json()
    assert agent["name"] == "TrendHunter"
    assert agent["status"] == "idle"


def test_unknown_agent_is_404(client: TestClient) -> None:
    assert client.get("/agents/competitor-spy").status_code == 404
    assert client.post("/agents/nobody/pause").status_code == 404


def test_pause_blocks_tasks_until_resumed(client: TestClient) -> None:
    paused = client.post("/agents/trend-hunter/pause")
    assert paused.json()["status"] == "paused"

    assert client.post("/tasks/trends", json={"niche": "beauty"}).status_code == 409

    resumed = client.post("/agents/trend-hunter/resume")
    assert resumed.json()["status"] == "idle"
    response = client.post("/tasks/trends", json={"niche": "beauty"})
    assert response.status_code == 200
    assert response.json()["niche"] == "beauty"

    tasks = client.get("/agents/trend-hunter/tasks").json()
    assert [t["status"] for t in tasks] == ["completed"]


def test_send_message_is_accepted(client: TestClient) -> None:
    response = client.post("/agents/product-scout/messages", json={"content": "check this"})
    assert response.status_code == 202
    assert response.json()["message_id"].startswith("msg-")


def test_content_and_pricing_from_product_fields(client: TestClient) -> None:
    product = {
        "id": "prod-api",
        "title": "Posture Corrector",
        "description": "",
        "source_url": "https://cjdropshipping.com/product/9",
        "supplier": "CJ Dropshipping",
        "cost_price": 8.0,
        "suggested_price": 24.0,
        "profit_margin": 66.0,
    }

    content = client.post("/tasks/content", json={"product": product, "options": {"style": "value"}})
    assert content.status_code == 200
    assert content.json()["style"] == "value"

    pricing = client.post("/tasks/pricing", json={"product": product})
    assert pricing.status_code == 200
    assert pricing.json()["product_id"] == "prod-api"

    assert client.post("/tasks/pricing", json={"product": {"name": "nothing"}}).status_code == 400


def test_workflow_lifecycle(client: TestClient) -> None:
    created = client.post(
        "/workflows",
        json={
            "name": "Trends only",
            "steps": [{"agent": "trend-hunter", "action": "analyze_trends", "input": {"niche": "fitness"}}],
        },
    )
    assert created.status_code == 201
    workflow_id = created.json()["id"]
    assert created.json()["status"] == "idle"

    executed = client.post(f"/workflows/{workflow_id}/execute")
    assert executed.status_code == 200
    assert executed.json()["status"] == "completed"

    assert client.post(f"/workflows/{workflow_id}/execute").status_code == 409
    assert client.get("/workflows/workflow-missing").status_code == 404
    assert len(client.get("/workflows").json()) == 1


def test_invalid_workflow_definition_is_400(client: TestClient) -> None:
    response = client.post(
        "/workflows",
        json={"name": "Broken", "steps": [{"agent": "competitor-spy", "action": "spy", "input": "x"}]},
    )
    assert response.status_code == 400


def test_autopilot_endpoints(client: TestClient) -> None:
    assert client.post("/autopilot/start", json={"mode": "balanced", "niches": []}).status_code == 400
    assert client.get("/autopilot/state").json()["is_running"] is False

    started = client.post("/autopilot/start", json={"mode": "balanced", "niches": ["fitness"]})
    assert started.status_code == 200
    assert started.json()["is_running"] is True

    mode = client.put("/autopilot/mode", json={"mode": "aggressive"})
    assert mode.json()["mode"] == "aggressive"

    assert client.post("/autopilot/decisions/decision-missing/approve").status_code == 404
    assert client.delete("/autopilot/decisions/decision-missing").status_code == 404
    assert client.delete("/autopilot/errors").status_code == 204
    assert isinstance(client.get("/autopilot/decisions", params={"pending": True}).json(), list)

    report = client.get("/autopilot/report", params={"period": "weekly"})
    assert report.status_code == 200
    assert report.json()["period"] == "weekly"
    assert client.get("/autopilot/report", params={"period": "yearly"}).status_code == 422

    stopped = client.post("/autopilot/stop")
    assert stopped.json()["is_running"] is False


def test_events_are_recorded(client: TestClient) -> None:
    client.post("/tasks/trends", json={"niche": "pet supplies"})

    events = client.get("/events", params={"limit": 500}).json()
    assert events
    completed = client.get("/events", params={"type": "agent:task_completed"}).json()
    assert len(completed) == 1
    assert completed[0]["agent"] == "trend-hunter"


def test_status_mapping() -> None:
    assert status_for(AgentPausedError("paused")) == 409
    assert status_for(WorkflowStateError("again")) == 409
    assert status_for(TaskTimeoutError("slow")) == 504
    assert status_for(AutoPilotConfigError("bad")) == 400
