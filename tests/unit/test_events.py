from __future__ import annotations

import asyncio
from contextlib import ExitStack

import pytest

from slidesync.sync.events import EventBus, SceneChanged, SlideAdvanced


@pytest.mark.asyncio
async def test_handlers_receive_events_of_their_kind_in_order() -> None:
    bus = EventBus()
    seen: list[object] = []
    bus.subscribe(SceneChanged, seen.append)

    bus.publish(SceneChanged("A"))
    bus.publish(SlideAdvanced(1))
    bus.publish(SceneChanged("B"))
    await bus.drain(timeout=1.0)

    assert seen == [SceneChanged("A"), SceneChanged("B")]
    await bus.close()


@pytest.mark.asyncio
async def test_same_kind_runs_to_completion_before_the_next_event() -> None:
    bus = EventBus()
    log: list[str] = []

    async def slow(event: SceneChanged) -> None:
        log.append(f"{event.name}:start")
        await asyncio.sleep(0.01)
        log.append(f"{event.name}:end")

    bus.subscribe(SceneChanged, slow)
    bus.publish(SceneChanged("A"))
    bus.publish(SceneChanged("B"))
    await bus.drain(timeout=1.0)

    assert log == ["A:start", "A:end", "B:start", "B:end"]
    await bus.close()


@pytest.mark.asyncio
async def test_other_kinds_keep_flowing_while_a_handler_waits() -> None:
    bus = EventBus()
    gate = asyncio.Event()
    slides: list[int] = []

    async def blocked(event: SceneChanged) -> None:
        await gate.wait()

    bus.subscribe(SceneChanged, blocked)
    bus.subscribe(SlideAdvanced, lambda e: slides.append(e.index))

    bus.publish(SceneChanged("A"))
    bus.publish(SlideAdvanced(3))
    for _ in range(5):
        await asyncio.sleep(0)

    assert slides == [3]
    gate.set()
    await bus.drain(timeout=1.0)
    await bus.close()


@pytest.mark.asyncio
async def test_failing_handler_is_logged_and_others_still_run() -> None:
    bus = EventBus()
    seen: list[str] = []

    def broken(event: SceneChanged) -> None:
        raise ValueError("bad handler")

    bus.subscribe(SceneChanged, broken)
    bus.subscribe(SceneChanged, lambda e: seen.append(e.name))

    bus.publish(SceneChanged("A"))
    await bus.drain(timeout=1.0)

    assert seen == ["A"]
    await bus.close()


@pytest.mark.asyncio
async def test_closed_subscriptions_stop_receiving() -> None:
    bus = EventBus()
    seen: list[str] = []

    with ExitStack() as stack:
        stack.enter_context(bus.subscribe(SceneChanged, lambda e: seen.append(e.name)))
        assert bus.subscriber_count(SceneChanged) == 1
        bus.publish(SceneChanged("A"))
        await bus.drain(timeout=1.0)

    assert bus.subscriber_count(SceneChanged) == 0
    bus.publish(SceneChanged("B"))
    await bus.drain(timeout=1.0)

    assert seen == ["A"]
    await bus.close()


@pytest.mark.asyncio
async def test_publish_after_close_is_ignored() -> None:
    bus = EventBus()
    await bus.close()

    bus.publish(SceneChanged("A"))
    await bus.drain(timeout=1.0)
