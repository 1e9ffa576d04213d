"""Helpers for interpreting the opaque payloads handed to strategies."""
from __future__ import annotations

import asyncio
import random
from dataclasses import fields
from typing import Any, Iterable, List, Mapping

from dropship_agents.core.errors import StrategyInputError
from dropship_agents.core.market import GeneratedContent, ProductScoutResult, ScoutedProduct
from dropship_agents.core.models import AgentTask

_PRODUCT_FIELDS = {f.name for f in fields(ScoutedProduct)}


async def simulate_call(rng: random.Random, low: float, high: float, scale: float = 1.0) -> None:
    """Stand-in for a network round trip; always yields to the event loop."""
    await asyncio.sleep(rng.uniform(low, high) * scale if scale > 0 else 0)


def option(task: AgentTask, key: str, default: Any = None) -> Any:
    """Look up ``key`` in the task options first, then in a mapping payload."""
    if key in task.options and task.options[key] is not None:
        return task.options[key]
    if isinstance(task.input, Mapping) and task.input.get(key) is not None:
        return task.input[key]
    return default


def product_from_mapping(data: Mapping[str, Any]) -> ScoutedProduct:
    known = {key: value for key, value in data.items() if key in _PRODUCT_FIELDS}
    try:
        return ScoutedProduct(**known)
    except TypeError as exc:
        raise StrategyInputError(f"Invalid product payload: {exc}") from exc


def coerce_products(payload: Any) -> List[ScoutedProduct]:
    """Flatten whatever a caller or a previous workflow step produced into products."""
    if payload is None:
        return []
    if isinstance(payload, ScoutedProduct):
        return [payload]
    if isinstance(payload, ProductScoutResult):
        return list(payload.products)
    if isinstance(payload, GeneratedContent):
        return [payload.product]
    if isinstance(payload, Mapping):
        if "products" in payload:
            return coerce_products(payload["products"])
        if "product" in payload:
            return coerce_products(payload["product"])
        if "title" in payload and "cost_price" in payload:
            return [product_from_mapping(payload)]
        return []
    if isinstance(payload, Iterable) and not isinstance(payload, (str, bytes)):
        products: List[ScoutedProduct] = []
        for item in payload:
            products.extend(coerce_products(item))
        return products
    return []


def text_input(payload: Any, key: str) -> str:
    """Return a string payload or ``payload[key]``; empty string otherwise."""
    if isinstance(payload, str):
        return payload.strip()
    if isinstance(payload, Mapping):
        value = payload.get(key)
        return str(value).strip() if value else ""
    return ""
