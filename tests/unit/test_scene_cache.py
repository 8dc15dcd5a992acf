from __future__ import annotations

import asyncio

import pytest

from slidesync.core.config import OverlayConfig
from slidesync.core.exceptions import ObsRequestError
from slidesync.core.state import ConnectionStatus, Scene, SceneItem, SyncState
from slidesync.sync.events import EventBus
from slidesync.sync.mocks import MockSceneController
from slidesync.sync.scene_cache import SceneCache


async def _connected_cache(scenes: dict) -> tuple[SceneCache, MockSceneController, EventBus]:
    bus = EventBus()
    obs = MockSceneController(bus, scenes)
    await obs.connect("ws://mock", "")
    state = SyncState(connection=ConnectionStatus.CONNECTED)
    return SceneCache(obs, state, OverlayConfig()), obs, bus


@pytest.mark.asyncio
async def test_refresh_requires_connection() -> None:
    bus = EventBus()
    obs = MockSceneController(bus, {"Intro": None})
    cache = SceneCache(obs, SyncState(), OverlayConfig())

    assert await cache.refresh() == 0
    assert len(cache) == 0
    await bus.close()


@pytest.mark.asyncio
async def test_refresh_caches_scenes_and_overlay_text() -> None:
    cache, obs, bus = await _connected_cache({"Intro": None, "Camera": "next_slide"})

    assert await cache.refresh() == 2
    assert cache.scene_names() == ["Intro", "Camera"]
    assert cache.lookup_scene("Camera")
    assert not cache.lookup_scene("Nope")
    assert not cache.lookup_scene(None)
    assert cache.lookup_overlay_text("Camera") == "next_slide"
    assert cache.lookup_overlay_text("Intro") is None
    await bus.close()


@pytest.mark.asyncio
async def test_cache_is_write_once_per_key() -> None:
    cache, obs, bus = await _connected_cache({"Camera": "next_slide"})
    await cache.refresh()

    # OBS now reports different overlay text; the cached copy wins.
    obs.set_scene("Camera", "previous_slide")
    obs.set_scene("Outro", None)

    assert await cache.refresh() == 1
    assert cache.lookup_overlay_text("Camera") == "next_slide"
    assert "Outro" in cache
    assert len(cache) == 2
    await bus.close()


@pytest.mark.asyncio
async def test_scenes_removed_from_obs_stay_cached() -> None:
    cache, obs, bus = await _connected_cache({"Intro": None, "Gone": None})
    await cache.refresh()

    obs._scenes.pop("Gone")
    await cache.refresh()

    assert cache.lookup_scene("Gone")
    await bus.close()


class _FlakyOverlayController(MockSceneController):
    def __init__(self, bus: EventBus, scenes: dict):
        super().__init__(bus, scenes)
        self.fail_reads = 1

    async def read_overlay_text(self, source_name: str) -> str:
        if self.fail_reads:
            self.fail_reads -= 1
            raise ObsRequestError("GetInputSettings", 600, "busy")
        return await super().read_overlay_text(source_name)


@pytest.mark.asyncio
async def test_failed_overlay_read_is_retried_on_next_refresh() -> None:
    bus = EventBus()
    obs = _FlakyOverlayController(bus, {"Camera": "click_slide"})
    await obs.connect("ws://mock", "")
    cache = SceneCache(obs, SyncState(connection=ConnectionStatus.CONNECTED), OverlayConfig())

    await cache.refresh()
    assert cache.lookup_scene("Camera")
    assert cache.lookup_overlay_text("Camera") is None

    await cache.refresh()
    assert cache.lookup_overlay_text("Camera") == "click_slide"
    await bus.close()


def test_find_overlay_item_matches_prefix_and_kind_case_insensitively() -> None:
    cache = SceneCache(None, SyncState(), OverlayConfig())  # type: ignore[arg-type]
    scene = Scene(
        "Camera",
        (
            SceneItem("ppt_commands_wrong_kind", "image_source"),
            SceneItem("PPT_Commands Camera", "TEXT_FT2_SOURCE_V2"),
            SceneItem("ppt_commands second", "text_gdiplus_v2"),
        ),
    )

    item = cache.find_overlay_item(scene)

    assert item is not None
    assert item.source_name == "PPT_Commands Camera"
    assert cache.find_overlay_item(Scene("Empty")) is None


class _SlowOverlayController(MockSceneController):
    async def read_overlay_text(self, source_name: str) -> str:
        await asyncio.sleep(0.02)
        return await super().read_overlay_text(source_name)


@pytest.mark.asyncio
async def test_overlapping_refreshes_are_serialized() -> None:
    bus = EventBus()
    obs = _SlowOverlayController(bus, {"A": "next_slide", "B": "click_slide"})
    await obs.connect("ws://mock", "")
    cache = SceneCache(obs, SyncState(connection=ConnectionStatus.CONNECTED), OverlayConfig())

    first = asyncio.create_task(cache.refresh())
    await asyncio.sleep(0.005)
    obs.set_scene("C", "previous_slide")
    second = asyncio.create_task(cache.refresh())

    assert await asyncio.gather(first, second) == [2, 1]
    reads = [arg for req, arg in obs.requests if req == "read_overlay_text"]
    assert reads == ["ppt_commands A", "ppt_commands B", "ppt_commands C"]
    assert cache.lookup_overlay_text("C") == "previous_slide"
    await bus.close()
