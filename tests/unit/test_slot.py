from __future__ import annotations

import asyncio

import pytest

from slidesync.core.config import OverlapPolicy
from slidesync.sync.slot import BatchSlot


class _GatedBatch:
    """Batch that blocks until released, recording when it ran."""

    def __init__(self, name: str, log: list[str]):
        self.name = name
        self.log = log
        self.release = asyncio.Event()

    async def __call__(self) -> None:
        self.log.append(f"{self.name}:start")
        await self.release.wait()
        self.log.append(f"{self.name}:end")


@pytest.mark.asyncio
async def test_queue_policy_runs_every_batch_in_order_without_overlap() -> None:
    slot = BatchSlot(OverlapPolicy.QUEUE)
    log: list[str] = []
    first = _GatedBatch("a", log)
    second = _GatedBatch("b", log)

    assert slot.submit("a", first)
    assert slot.submit("b", second)
    await asyncio.sleep(0)
    assert log == ["a:start"]
    assert slot.busy

    first.release.set()
    second.release.set()
    await slot.join()

    assert log == ["a:start", "a:end", "b:start", "b:end"]
    assert slot.completed == 2
    assert not slot.busy
    await slot.stop()


@pytest.mark.asyncio
async def test_drop_policy_discards_triggers_while_busy() -> None:
    slot = BatchSlot(OverlapPolicy.DROP)
    log: list[str] = []
    first = _GatedBatch("a", log)

    assert slot.submit("a", first)
    await asyncio.sleep(0)
    assert not slot.submit("b", _GatedBatch("b", log))

    first.release.set()
    await slot.join()
    assert slot.submit("c", _GatedBatch("c", log)) is True
    await asyncio.sleep(0)

    assert "b:start" not in log
    assert slot.dropped == 1
    await slot.stop()


@pytest.mark.asyncio
async def test_failed_batch_does_not_stop_the_slot() -> None:
    slot = BatchSlot()
    ran: list[str] = []

    async def boom() -> None:
        raise RuntimeError("kaput")

    async def fine() -> None:
        ran.append("fine")

    slot.submit("boom", boom)
    slot.submit("fine", fine)
    await slot.join()

    assert ran == ["fine"]
    assert slot.get_stats()["failed"] == 1
    assert slot.get_stats()["completed"] == 1
    await slot.stop()


@pytest.mark.asyncio
async def test_stop_discards_pending_batches() -> None:
    slot = BatchSlot()
    log: list[str] = []
    slot.submit("a", _GatedBatch("a", log))
    slot.submit("b", _GatedBatch("b", log))
    await asyncio.sleep(0)

    await slot.stop()

    assert log == ["a:start"]
    assert not slot.busy
