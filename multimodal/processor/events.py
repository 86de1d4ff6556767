import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import cast

from multimodal.logging.logger import Log
from multimodal.processor.models import utcnow


class EventKind(str, Enum):
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_EVENTS = frozenset({EventKind.COMPLETED, EventKind.FAILED, EventKind.CANCELLED})


@dataclass(frozen=True)
class ProcessingEvent:
    run_id: str
    kind: EventKind
    timestamp: datetime = field(default_factory=utcnow)
    payload: dict[str, object] = field(default_factory=dict)


Listener = Callable[[ProcessingEvent], None]


class EventSubscription:
    """Bounded async buffer of events; the oldest event is dropped when full."""

    _CLOSED = object()

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._closed = False

    def push(self, item: ProcessingEvent) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # A full buffer is drained first; the iterator then stops on its own.
        if not self._queue.full():
            self._queue.put_nowait(self._CLOSED)

    async def __aiter__(self) -> AsyncIterator[ProcessingEvent]:
        while True:
            if self._closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield cast(ProcessingEvent, item)


class EventChannel:
    """Per-run publish/subscribe channel.

    Listeners are called synchronously in registration order. Emission walks a
    snapshot of the listener list, so listeners may call ``on``/``off`` while
    being notified; changes take effect from the next event. Once closed, the
    channel drops every further event.
    """

    def __init__(self, run_id: str) -> None:
        self._run_id = run_id
        self._listeners: dict[EventKind, list[Listener]] = {}
        self._subscriptions: list[EventSubscription] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on(self, kind: EventKind, listener: Listener) -> None:
        self._listeners.setdefault(kind, []).append(listener)

    def off(self, kind: EventKind, listener: Listener) -> None:
        listeners = self._listeners.get(kind)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def subscribe(self, maxsize: int = 0) -> EventSubscription:
        """Return an async iterator over every event of this run."""
        subscription = EventSubscription(maxsize)
        if self._closed:
            subscription.close()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def emit(self, kind: EventKind, payload: dict[str, object] | None = None) -> ProcessingEvent | None:
        if self._closed:
            return None
        event = ProcessingEvent(run_id=self._run_id, kind=kind, payload=payload or {})
        for listener in tuple(self._listeners.get(kind, ())):
            try:
                listener(event)
            except Exception as exc:
                Log.error(f"Listener for '{kind.value}' on run {self._run_id} raised: {exc}")
        for subscription in tuple(self._subscriptions):
            subscription.push(event)
        return event

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()
