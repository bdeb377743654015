"""
Order Service — in-process event bus

Decouples order state changes from their side effects:

    OrderService ──publish──▶ EventBus ──▶ handler 1, handler 2, ... (in order)
                                 │
                                 ├──▶ append-only event log (drain / replay)
                                 └──▶ MessageBroker (Redis or logging stub)

Delivery is at-least-once and in-process. A failing handler is logged and
skipped; it never rolls back the publish or blocks its siblings. The log is
never truncated automatically: clear() is an explicit operator action.

One EventBus is built at process start and injected into the OrderService.
"""

import copy
import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from .broker import MessageBroker, NullBroker

logger = logging.getLogger(__name__)

Handler = Callable[["Event"], Any]


@dataclass(frozen=True)
class Event:
    id: str
    name: str
    payload: dict
    timestamp: datetime
    sequence: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
            "sequence": self.sequence,
        }


class EventBus:
    def __init__(self, broker: MessageBroker | None = None) -> None:
        self.broker: MessageBroker = broker or NullBroker()
        self._log: list[Event] = []
        self._handlers: dict[str, list[Handler]] = {}
        self._sequence = 0
        # guards the log, the sequence counter and the handler registry
        self._lock = threading.Lock()

    def subscribe(self, name: str, handler: Handler) -> None:
        """Register `handler` for every future publish of `name`."""
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)
        logger.info("Subscribing to event: %s", name)

    def subscribers(self, name: str) -> list[Handler]:
        with self._lock:
            return list(self._handlers.get(name, ()))

    async def publish(self, name: str, payload: dict) -> Event:
        """
        Record an event and deliver it.

        1. Append to the log under the lock (sequence assigned here)
        2. Call the handlers for `name` in registration order
        3. Forward to the broker

        Never raises because of a handler or broker failure.
        """
        with self._lock:
            self._sequence += 1
            event = Event(
                id=str(uuid4()),
                name=name,
                payload=copy.deepcopy(payload),
                timestamp=datetime.now(timezone.utc),
                sequence=self._sequence,
            )
            self._log.append(event)
            handlers = list(self._handlers.get(name, ()))

        logger.info("Publishing domain event: %s (id=%s, seq=%d)", name, event.id, event.sequence)

        for handler in handlers:
            await self._deliver(handler, event)

        try:
            await self.broker.publish(event)
        except Exception:
            logger.exception("Failed to forward event %s to the message broker", event.id)

        return event

    def drain(self, after: int = 0) -> list[Event]:
        """Snapshot of the log, oldest first, skipping sequences <= `after`."""
        with self._lock:
            return [e for e in self._log if e.sequence > after]

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._log)
            self._log = []
        logger.warning("Event log cleared (%d events dropped)", dropped)
        return dropped

    async def replay(self, handler: Handler, name: str | None = None) -> int:
        """Feed already-logged events to `handler`; returns how many were delivered."""
        events = [e for e in self.drain() if name is None or e.name == name]
        for event in events:
            await self._deliver(handler, event)
        return len(events)

    async def _deliver(self, handler: Handler, event: Event) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Event handler %s failed for %s (id=%s)",
                getattr(handler, "__name__", repr(handler)),
                event.name,
                event.id,
            )
