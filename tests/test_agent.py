"""Tests for the agent task/state machine."""
from __future__ import annotations

import asyncio

import pytest

from conftest import StubStrategy, echo_handler, fast_settings, stub_agent
from dropship_agents.agents.base import Agent
from dropship_agents.core.errors import AgentPausedError, TaskTimeoutError, UnknownTaskError
from dropship_agents.core.models import (
    USER,
    AgentStatus,
    AgentType,
    EventType,
    MessageType,
    TaskStatus,
)


@pytest.mark.anyio
async def test_execute_returns_result_and_archives_task() -> None:
    agent = stub_agent()
    events = []
    agent.on(events.append)

    result = await agent.execute({"niche": "fitness"}, options={"depth": "quick"})

    assert result["action"] == "run"
    assert result["options"] == {"depth": "quick"}
    assert agent.status == AgentStatus.IDLE
    assert agent.current_task is None
    [task] = agent.task_history
    assert task.status == TaskStatus.COMPLETED
    assert task.progress == 100
    assert task.result == result
    kinds = [e.type for e in events]
    assert kinds.index(EventType.TASK_STARTED) < kinds.index(EventType.TASK_COMPLETED)


@pytest.mark.anyio
async def test_action_is_used_as_task_type() -> None:
    agent = stub_agent()
    await agent.execute("x", action="scout_products")
    assert agent.task_history[0].type == "scout_products"


@pytest.mark.anyio
async def test_success_rate_tracks_completed_and_failed_tasks() -> None:
    async def handler(agent, task):
        if task.input == "fail":
            raise RuntimeError("boom")
        return "ok"

    agent = stub_agent(handler=handler)
    assert agent.stats.success_rate == 100

    for payload in ("ok", "ok", "ok", "fail"):
        try:
            await agent.execute(payload)
        except RuntimeError:
            pass

    assert agent.stats.tasks_completed == 3
    assert agent.stats.tasks_failed == 1
    assert agent.stats.success_rate == pytest.approx(75.0)
    assert agent.stats.avg_task_time >= 0


@pytest.mark.anyio
async def test_failure_is_archived_and_reraised() -> None:
    async def handler(agent, task):
        raise ValueError("bad input")

    agent = stub_agent(handler=handler)
    events = []
    agent.on(events.append)

    with pytest.raises(ValueError, match="bad input"):
        await agent.execute("anything")

    assert agent.status == AgentStatus.ERROR
    [task] = agent.task_history
    assert task.status == TaskStatus.FAILED
    assert task.error == "bad input"
    assert any(e.type == EventType.TASK_FAILED for e in events)


@pytest.mark.anyio
async def test_unknown_action_fails_task() -> None:
    agent = Agent(AgentType.TREND_HUNTER, StubStrategy(), fast_settings())
    with pytest.raises(UnknownTaskError):
        await agent.execute("x", action="nope")
    assert agent.task_history[0].status == TaskStatus.FAILED


@pytest.mark.anyio
async def test_back_to_back_calls_never_overlap() -> None:
    running = 0
    peak = 0

    async def handler(agent, task):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        assert agent.current_task is task
        await asyncio.sleep(0.01)
        running -= 1
        return task.input

    agent = stub_agent(handler=handler)
    results = await asyncio.gather(*(agent.execute(i) for i in range(5)))

    assert results == [0, 1, 2, 3, 4]
    assert peak == 1
    assert len(agent.task_history) == 5
    assert all(task.is_terminal for task in agent.task_history)


@pytest.mark.anyio
async def test_pause_rejects_new_tasks_and_resume_restores_idle() -> None:
    agent = stub_agent()
    await agent.execute("before")
    history = list(agent.task_history)

    agent.pause()
    assert agent.status == AgentStatus.PAUSED
    with pytest.raises(AgentPausedError):
        await agent.execute("during")

    agent.resume()
    assert agent.status == AgentStatus.IDLE
    assert agent.task_history == history


@pytest.mark.anyio
async def test_in_flight_task_finishes_while_paused() -> None:
    release = asyncio.Event()

    async def handler(agent, task):
        await release.wait()
        return "done"

    agent = stub_agent(handler=handler)
    pending = asyncio.create_task(agent.execute("slow"))
    await asyncio.sleep(0.01)
    agent.pause()
    release.set()

    assert await pending == "done"
    assert agent.status == AgentStatus.PAUSED
    assert agent.task_history[0].status == TaskStatus.COMPLETED


@pytest.mark.anyio
async def test_timeout_fails_the_task() -> None:
    async def handler(agent, task):
        await asyncio.sleep(1)

    agent = stub_agent(handler=handler, timeout=0.05)
    with pytest.raises(TaskTimeoutError):
        await agent.execute("slow")
    assert agent.task_history[0].status == TaskStatus.FAILED
    assert "timed out" in agent.task_history[0].error


@pytest.mark.anyio
async def test_progress_is_clamped_and_monotonic() -> None:
    seen = []

    async def handler(agent, task):
        for value in (30, 10, 150):
            agent.update_progress(value)
            seen.append(agent.current_task.progress)
        return None

    agent = stub_agent(handler=handler)
    await agent.execute("x")
    assert seen == [30, 30, 100]


@pytest.mark.anyio
async def test_think_reports_to_user_before_working() -> None:
    agent = Agent(
        AgentType.PRODUCT_SCOUT,
        StubStrategy(echo_handler(), thought="Looking around..."),
        fast_settings(),
    )
    statuses = []
    agent.on(lambda e: statuses.append(e.data["status"]) if e.type == EventType.STATUS_CHANGED else None)

    await agent.execute("x")

    assert statuses[:3] == ["thinking", "working", "idle"]
    thought = agent.messages[0]
    assert thought.recipient == USER
    assert thought.type == MessageType.INFO
    assert "Looking around" in thought.content


@pytest.mark.anyio
async def test_state_snapshot_is_a_copy() -> None:
    agent = stub_agent()
    await agent.execute("x")

    state = agent.get_state()
    state.task_history.clear()
    state.stats.tasks_completed = 99

    assert len(agent.task_history) == 1
    assert agent.stats.tasks_completed == 1


def test_message_log_is_bounded() -> None:
    agent = stub_agent(message_log_size=3)
    for index in range(5):
        agent.send_message(USER, MessageType.INFO, f"m{index}")
    assert [m.content for m in agent.messages] == ["m2", "m3", "m4"]


@pytest.mark.anyio
async def test_start_and_stop_broadcast() -> None:
    agent = stub_agent()
    await agent.start()
    await agent.stop()
    contents = [m.content for m in agent.messages]
    assert "online" in contents[0]
    assert "shutting down" in contents[1]
    assert all(m.recipient == "all" for m in agent.messages)


@pytest.mark.anyio
async def test_cancel_while_thinking_archives_failed_task() -> None:
    agent = Agent(
        AgentType.PRODUCT_SCOUT,
        StubStrategy(echo_handler(), thought="Taking a while..."),
        fast_settings(think_delay=5.0, timeout=None),
    )

    running = asyncio.create_task(agent.execute("x"))
    await asyncio.sleep(0.05)
    assert agent.status == AgentStatus.THINKING
    running.cancel()
    with pytest.raises(asyncio.CancelledError):
        await running

    assert agent.status == AgentStatus.ERROR
    assert agent.current_task is None
    [task] = agent.task_history
    assert task.status == TaskStatus.FAILED
    assert agent.stats.tasks_failed == 1
