"""Signaling events and the in-process bus that fans them out."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum

from loguru import logger
from pydantic import BaseModel, Field

from matchmaker.shared.domain.clock import utc_now


class SignalEventType(str, Enum):
    REGISTERED = "registered"
    RESOLVED = "resolved"
    ANSWERED = "answered"
    REMOVED = "removed"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


class SignalEvent(BaseModel):
    type: SignalEventType
    code: str
    is_fixed: bool = False
    owner_account_ref: str | None = None
    at: datetime = Field(default_factory=utc_now)


EventHandler = Callable[[SignalEvent], Awaitable[None] | None]


class EventBus:
    """Publish/subscribe point for session state transitions.

    Handlers are called in subscription order. Streaming consumers (the
    websocket feed) take a bounded queue instead; a consumer that falls
    behind loses events rather than slowing publishers down.
    """

    def __init__(self, queue_size: int = 100):
        self._handlers: list[EventHandler] = []
        self._queues: set[asyncio.Queue[SignalEvent]] = set()
        self._queue_size = queue_size

    def subscribe(self, handler: EventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def open_queue(self) -> asyncio.Queue[SignalEvent]:
        queue: asyncio.Queue[SignalEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._queues.add(queue)
        return queue

    def close_queue(self, queue: asyncio.Queue[SignalEvent]) -> None:
        self._queues.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers) + len(self._queues)

    async def publish(self, event: SignalEvent) -> None:
        """Deliver an event. Subscriber failures are logged, never raised."""
        logger.debug("Event {} code={}", event.type, event.code)

        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Event handler {} failed for {} {}", handler, event.type, event.code)

        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Dropping {} event for {}: consumer queue full", event.type, event.code)
