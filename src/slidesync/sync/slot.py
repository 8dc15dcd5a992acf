"""
Depth-one execution slot for directive batches.

At most one batch runs at a time. A batch occupies the slot until its
whole request chain, delays included, has completed. What happens to a
trigger that arrives meanwhile depends on the overlap policy:

- QUEUE: it waits its turn, FIFO.
- DROP: it is discarded.

The slot runs on its own worker task, so the event bus, the watchdog
timer and unrelated event kinds keep flowing while a batch is waiting.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from slidesync.core.config import OverlapPolicy

logger = structlog.get_logger()

BatchFactory = Callable[[], Awaitable[None]]


class BatchSlot:
    """Serializes directive batches according to an overlap policy."""

    def __init__(self, policy: OverlapPolicy = OverlapPolicy.QUEUE, name: str = "batch"):
        self.policy = policy
        self.name = name
        self._queue: asyncio.Queue[tuple[str, BatchFactory]] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._busy = False

        # Stats
        self.completed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def busy(self) -> bool:
        """True while a batch is running or waiting to run."""
        return self._busy or not self._queue.empty()

    def submit(self, label: str, factory: BatchFactory) -> bool:
        """Hand a batch to the slot. Returns False when the policy dropped it."""
        if self.policy is OverlapPolicy.DROP and self.busy:
            self.dropped += 1
            logger.info("Batch dropped, slot busy", slot=self.name, batch=label)
            return False

        self._queue.put_nowait((label, factory))
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._run(), name=f"slot-{self.name}"
            )
        return True

    async def _run(self) -> None:
        while True:
            label, factory = await self._queue.get()
            self._busy = True
            try:
                await factory()
                self.completed += 1
            except Exception as e:
                self.failed += 1
                logger.error(
                    "Batch failed", slot=self.name, batch=label, error=str(e), exc_info=True
                )
            finally:
                self._busy = False
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every submitted batch has finished."""
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel the worker; pending batches are discarded."""
        if self._worker is not None:
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
            self._worker = None
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    def get_stats(self) -> dict:
        """Get slot statistics."""
        return {
            "policy": self.policy.value,
            "busy": self.busy,
            "completed": self.completed,
            "failed": self.failed,
            "dropped": self.dropped,
        }
