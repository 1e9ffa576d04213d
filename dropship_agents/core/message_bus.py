"""In-memory router delivering agent messages breadth-first."""
from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Protocol

import structlog

from .models import BROADCAST, USER, AgentMessage, address_of

logger = structlog.get_logger(__name__)


class MessageReceiver(Protocol):
    def receive_message(self, message: AgentMessage) -> None:
        ...


class MessageRouter:
    """Route messages to registered agents by recipient.

    Messages emitted while a delivery is running are queued and routed once
    the current delivery returns, so message chains never recurse.
    """

    def __init__(self) -> None:
        self._receivers: Dict[str, MessageReceiver] = {}
        self._queue: Deque[AgentMessage] = deque()
        self._draining = False

    def register(self, address: str, receiver: MessageReceiver) -> None:
        """Attach a receiver under its address (the agent type value)."""
        self._receivers[address] = receiver

    def unregister(self, address: str) -> None:
        self._receivers.pop(address, None)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def route(self, message: AgentMessage) -> None:
        """Queue ``message`` and drain the queue unless a drain is running."""
        self._queue.append(message)
        if self._draining:
            return

        self._draining = True
        try:
            while self._queue:
                self._deliver(self._queue.popleft())
        finally:
            self._draining = False

    def _deliver(self, message: AgentMessage) -> None:
        recipient = address_of(message.recipient)
        if recipient == USER:
            # Surfaced to observers through the event stream only.
            return

        if recipient == BROADCAST:
            sender = address_of(message.sender)
            for address, receiver in list(self._receivers.items()):
                if address == sender:
                    continue
                self._hand_over(address, receiver, message)
            return

        receiver = self._receivers.get(recipient)
        if receiver is None:
            logger.warning(
                "message_router.unknown_recipient",
                recipient=recipient,
                sender=address_of(message.sender),
                message_id=message.id,
            )
            return
        self._hand_over(recipient, receiver, message)

    def _hand_over(self, address: str, receiver: MessageReceiver, message: AgentMessage) -> None:
        try:
            receiver.receive_message(message)
        except Exception:  # noqa: BLE001
            logger.exception(
                "message_router.delivery_failed",
                recipient=address,
                message_id=message.id,
            )
