"""Bounded in-memory record of recent events for polling clients."""
from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional

from .models import AgentEvent, EventType


class EventLog:
    def __init__(self, size: int = 200) -> None:
        self._events: Deque[AgentEvent] = deque(maxlen=size)

    def __call__(self, event: AgentEvent) -> None:
        self._events.append(event)

    def recent(self, limit: int = 50, event_type: Optional[EventType] = None) -> List[AgentEvent]:
        events = [e for e in self._events if event_type is None or e.type == event_type]
        return events[-limit:] if limit > 0 else []

    def __len__(self) -> int:
        return len(self._events)
