"""
Engine Builder for slidesync.

Wires the capabilities, the shared context and the sync components
together once at startup, and owns their lifecycle.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog

from slidesync.core.config import Settings
from slidesync.presentation.deck import Deck, load_deck
from slidesync.sync.context import SyncContext
from slidesync.sync.dispatcher import SyncDispatcher
from slidesync.sync.events import EventBus
from slidesync.sync.scene_cache import SceneCache
from slidesync.sync.tracker import StateTracker
from slidesync.sync.watchdog import ConnectionWatchdog

logger = structlog.get_logger()

# Scenes served by the mock scene controller.
DEMO_SCENES: dict[str, Optional[str]] = {
    "Intro": None,
    "Camera": "next_slide",
    "Slides": None,
    "Outro": "previous_slide\nclick_slide",
}

# Speaker notes served by the mock slide show when no deck is given.
DEMO_NOTES: list[Optional[str]] = [
    "OBSDefault:Slides\rOBSScene:Intro",
    "OBSScene:Camera\rOBSDelay:1500\rOBSScene:Slides",
    "",
    "OBSStay",
    "OBSScene:Outro\rOBSRecord:Stop",
]


class SyncEngine:
    """
    The running system: one context, one tracker, one dispatcher and the
    connection watchdog.
    """

    def __init__(
        self,
        context: SyncContext,
        cache: SceneCache,
        tracker: StateTracker,
        dispatcher: SyncDispatcher,
        watchdog: ConnectionWatchdog,
    ):
        self.context = context
        self.settings = context.settings
        self.cache = cache
        self.tracker = tracker
        self.dispatcher = dispatcher
        self.watchdog = watchdog
        self._running = False
        self._stopped = asyncio.Event()

    @property
    def state(self):
        return self.context.state

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Subscribe every component, then let the watchdog connect."""
        if self._running:
            return
        logger.info("Starting sync engine", mode=self.settings.mode.value)
        self._running = True
        self._stopped.clear()
        self.tracker.start()
        self.dispatcher.start()
        await self.watchdog.start()

    async def stop(self) -> None:
        """Stop all components and close the OBS link."""
        if not self._running:
            return
        logger.info("Stopping sync engine")
        self._running = False
        await self.watchdog.stop()
        await self.dispatcher.stop()
        self.tracker.stop()
        await self.context.scenes.disconnect()
        await self.context.bus.close()
        self._stopped.set()
        logger.info("Sync engine stopped", **self.get_stats())

    def request_stop(self) -> None:
        """Ask run_forever() to return."""
        self._stopped.set()

    async def run_forever(self) -> None:
        """Run until request_stop() or cancellation."""
        await self.start()
        try:
            await self._stopped.wait()
        finally:
            await self.stop()

    def get_stats(self) -> dict[str, Any]:
        state = self.context.state
        return {
            "connection": state.connection.value,
            "current_scene": state.current_scene,
            "default_scene": state.default_scene,
            "scenes_cached": len(self.cache),
            "batches_run": state.batches_run,
            "batches_dropped": state.batches_dropped,
            "scene_switches": state.scene_switches,
            "watchdog": self.watchdog.get_stats(),
            "slot": self.dispatcher.slot.get_stats(),
        }


def build_sync_engine(
    settings: Optional[Settings] = None,
    mock: bool = False,
    deck: Optional[Deck] = None,
) -> SyncEngine:
    """
    Build the sync engine.

    Args:
        settings: Configuration settings. Uses defaults if None.
        mock: If True, use in-memory OBS and slide show.
        deck: Speaker notes; loaded from settings.presentation.deck_path
            when None and a path is configured.

    Returns:
        SyncEngine ready to start.
    """
    if settings is None:
        settings = Settings()

    if deck is None and settings.presentation.deck_path is not None:
        deck = load_deck(settings.presentation.deck_path)
    if deck is None:
        deck = Deck(path=Path("."))

    logger.info(
        "Building sync engine",
        mode=settings.mode.value,
        mock=mock,
        slides=len(deck),
    )

    bus = EventBus()

    if mock:
        from slidesync.sync.mocks import MockPresentationDriver, MockSceneController

        scenes: Any = MockSceneController(bus, DEMO_SCENES)
        presentation: Any = MockPresentationDriver(bus, deck.notes or DEMO_NOTES)
    else:
        from slidesync.obs.client import ObsWebSocketClient
        from slidesync.presentation.keyboard import KeyboardPresentationDriver

        scenes = ObsWebSocketClient(bus, settings.obs.request_timeout_s)
        presentation = KeyboardPresentationDriver(bus, deck, settings.presentation)

    context = SyncContext(
        settings=settings,
        bus=bus,
        presentation=presentation,
        scenes=scenes,
    )
    cache = SceneCache(scenes, context.state, settings.overlay)

    return SyncEngine(
        context=context,
        cache=cache,
        tracker=StateTracker(context, cache),
        dispatcher=SyncDispatcher(context, cache),
        watchdog=ConnectionWatchdog(context),
    )
