"""Notification stream for session and trade lifecycle events."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    session_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc), kw_only=True)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        data = {"kind": self.kind}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            elif hasattr(value, "value"):
                value = value.value
            data[name] = value
        return data


@dataclass(frozen=True)
class TradeTicked(Event):
    trade_id: str
    instrument: str
    price: Decimal


@dataclass(frozen=True)
class TradeFinalized(Event):
    trade_id: str
    instrument: str
    status: str
    pnl: Decimal


@dataclass(frozen=True)
class SessionDiagnostic(Event):
    message: str
    instrument: str | None = None


@dataclass(frozen=True)
class SessionCompleted(Event):
    reason: str
    trade_count: int
    net_pnl: Decimal


class EventBus:
    """Fan-out of events to async subscribers and plain callbacks.

    Publishing never blocks; a subscriber whose queue is full loses the event.
    """

    def __init__(self, max_queue: int = 1000):
        self.max_queue = max_queue
        self._queues: set[asyncio.Queue] = set()
        self._listeners: list[Callable[[Event], None]] = []

    def add_listener(self, listener: Callable[[Event], None]):
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Event], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue)
        self._queues.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._queues.discard(queue)

    def publish(self, event: Event):
        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Event queue full; dropping {event.kind} for session {event.session_id}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener failed on {event.kind}: {e}", exc_info=True)
