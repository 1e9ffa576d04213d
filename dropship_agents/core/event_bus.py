"""Synchronous publish/subscribe channel for agent events."""
from __future__ import annotations

from typing import Callable, List

import structlog

from .models import AgentEvent

logger = structlog.get_logger(__name__)

EventHandler = Callable[[AgentEvent], None]
Unsubscribe = Callable[[], None]


class EventBus:
    """Fan-out of events to subscribers in subscription order."""

    def __init__(self, name: str = "bus") -> None:
        self._name = name
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Unsubscribe:
        """Register ``handler`` and return an idempotent unsubscribe handle."""
        self._handlers.append(handler)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if not subscribed:
                return
            subscribed = False
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, event: AgentEvent) -> None:
        # Iterate over a snapshot so handlers may unsubscribe while being called.
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "event_bus.handler_failed",
                    bus=self._name,
                    event_type=event.type.value,
                )

    def __len__(self) -> int:
        return len(self._handlers)
