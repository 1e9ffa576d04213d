"""CLI demonstration of a product discovery workflow."""
from __future__ import annotations

import argparse
import asyncio
from typing import List, NoReturn, Optional

from dropship_agents.config import Config
from dropship_agents.core.errors import DropshipAgentError
from dropship_agents.core.models import AgentEvent, EventType, MessageType, USER, address_of
from dropship_agents.observability import configure_logging
from dropship_agents.runtime import build_orchestrator

_SHOWN = {
    EventType.WORKFLOW_STARTED,
    EventType.WORKFLOW_STEP_COMPLETED,
    EventType.WORKFLOW_COMPLETED,
    EventType.WORKFLOW_FAILED,
    EventType.TASK_FAILED,
}


def print_event(event: AgentEvent) -> None:
    if event.type == EventType.MESSAGE:
        message = event.data
        if address_of(message.recipient) == USER and message.type != MessageType.PROGRESS:
            print(f"  [{address_of(message.sender)}] {message.content}")
    elif event.type in _SHOWN:
        data = event.data or {}
        detail = data.get("action") or data.get("name") or data.get("error") or ""
        print(f"* {event.type.value} {detail}".rstrip())


async def main(niche: str, max_products: int) -> None:
    config = Config.from_env()
    configure_logging(config.log_level, json=config.log_json)
    orchestrator = build_orchestrator(config)
    orchestrator.on(print_event)
    await orchestrator.start_all()

    try:
        analyses = await orchestrator.run_product_discovery_workflow(niche, {"max_products": max_products})
    except DropshipAgentError as exc:
        print(f"\nWorkflow failed: {exc}")
        return
    finally:
        await orchestrator.stop_all()

    if not isinstance(analyses, list):
        analyses = [analyses]
    print(f"\nPriced {len(analyses)} products for {niche}:")
    for analysis in analyses:
        print(
            f"  {analysis.product_title}: ${analysis.optimal_price:.2f} "
            f"({analysis.margin['optimal']:.1f}% margin, confidence {analysis.confidence:.0f})"
        )


def run(argv: Optional[List[str]] = None) -> NoReturn:
    parser = argparse.ArgumentParser(description="Run a product discovery workflow end to end.")
    parser.add_argument("niche", nargs="?", default="electronics")
    parser.add_argument("--max-products", type=int, default=3)
    args = parser.parse_args(argv)
    asyncio.run(main(args.niche, args.max_products))
    raise SystemExit(0)


if __name__ == "__main__":
    run()
