"""
Typed events and the bus that routes them.

Each event kind has its own FIFO and worker task: handlers for one kind
run to completion, one event at a time, while different kinds are
delivered concurrently. Publishing never blocks, so transports can
publish from inside their receive loops.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

logger = structlog.get_logger()


# =============================================================================
# Scene controller events
# =============================================================================


@dataclass(frozen=True)
class Connected:
    endpoint: str = ""


@dataclass(frozen=True)
class Disconnected:
    reason: str = ""


@dataclass(frozen=True)
class SceneChanged:
    name: str


@dataclass(frozen=True)
class SceneListChanged:
    pass


@dataclass(frozen=True)
class SceneCollectionChanged:
    collection: str = ""


@dataclass(frozen=True)
class RecordingStateChanged:
    active: bool


@dataclass(frozen=True)
class StreamingStateChanged:
    active: bool


# =============================================================================
# Presentation events
# =============================================================================


@dataclass(frozen=True)
class SlideAdvanced:
    index: int


Event = Union[
    Connected,
    Disconnected,
    SceneChanged,
    SceneListChanged,
    SceneCollectionChanged,
    RecordingStateChanged,
    StreamingStateChanged,
    SlideAdvanced,
]

Handler = Callable[[Any], Union[Awaitable[None], None]]


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`; closing it unsubscribes."""

    def __init__(self, bus: "EventBus", kind: type, handler: Handler):
        self.bus = bus
        self.kind = kind
        self.handler = handler
        self.active = True

    def close(self) -> None:
        if self.active:
            self.bus.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Subscription({self.kind.__name__}, {getattr(self.handler, '__qualname__', self.handler)})"


class EventBus:
    """In-process publish/subscribe with per-kind run-to-completion delivery."""

    def __init__(self) -> None:
        self._subscriptions: dict[type, list[Subscription]] = {}
        self._queues: dict[type, asyncio.Queue] = {}
        self._workers: dict[type, asyncio.Task] = {}
        self._closed = False
        self._in_flight = 0

    def subscribe(self, kind: type, handler: Handler) -> Subscription:
        subscription = Subscription(self, kind, handler)
        self._subscriptions.setdefault(kind, []).append(subscription)
        logger.debug("Subscribed", kind=kind.__name__)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscriptions.get(subscription.kind, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        subscription.active = False

    def subscriber_count(self, kind: type) -> int:
        return len(self._subscriptions.get(kind, []))

    def publish(self, event: Event) -> None:
        """Queue an event for delivery. Must be called from the event loop thread."""
        if self._closed:
            logger.debug("Bus closed, dropping event", event=event)
            return

        kind = type(event)
        queue = self._queues.get(kind)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[kind] = queue
        queue.put_nowait(event)
        self._in_flight += 1

        worker = self._workers.get(kind)
        if worker is None or worker.done():
            self._workers[kind] = asyncio.get_running_loop().create_task(
                self._deliver_loop(kind, queue),
                name=f"events-{kind.__name__}",
            )

    async def _deliver_loop(self, kind: type, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            try:
                for subscription in list(self._subscriptions.get(kind, [])):
                    if subscription.active:
                        await self._invoke(subscription, event)
            finally:
                self._in_flight -= 1
                queue.task_done()

    async def _invoke(self, subscription: Subscription, event: Event) -> None:
        try:
            result = subscription.handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "Event handler failed",
                kind=subscription.kind.__name__,
                handler=getattr(subscription.handler, "__qualname__", repr(subscription.handler)),
                error=str(e),
                exc_info=True,
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until every queued event has been handled."""

        async def _join_all() -> None:
            # Handlers may publish further events; loop until quiet.
            while self._in_flight:
                await asyncio.gather(*(q.join() for q in list(self._queues.values())))

        await asyncio.wait_for(_join_all(), timeout)

    async def close(self) -> None:
        """Stop delivery and drop all subscriptions."""
        self._closed = True
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        self._queues.clear()
        for subscribers in self._subscriptions.values():
            for subscription in subscribers:
                subscription.active = False
        self._subscriptions.clear()
