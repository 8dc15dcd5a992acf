"""
State Tracker: routes scene-controller events into the shared SyncState.

Owns every write to the connection flag and the output flags, and mirrors
OBS-reported scene changes into current_scene. The dispatcher also records
the scenes it switches to itself. The scene cache is refreshed on connect
and whenever OBS reports that its scene list or scene collection changed.
"""

from __future__ import annotations

from contextlib import ExitStack

import structlog

from slidesync.core.exceptions import ObsError
from slidesync.core.state import ConnectionStatus
from slidesync.sync.context import SyncContext
from slidesync.sync.events import (
    Connected,
    Disconnected,
    RecordingStateChanged,
    SceneChanged,
    SceneCollectionChanged,
    SceneListChanged,
    StreamingStateChanged,
)
from slidesync.sync.scene_cache import SceneCache

logger = structlog.get_logger()


class StateTracker:
    """Subscribes to scene-controller events for the lifetime of the engine."""

    def __init__(self, context: SyncContext, cache: SceneCache):
        self.context = context
        self.state = context.state
        self.cache = cache
        self._subscriptions = ExitStack()

    def start(self) -> None:
        bus = self.context.bus
        handlers = (
            (Connected, self._on_connected),
            (Disconnected, self._on_disconnected),
            (SceneListChanged, self._on_scenes_changed),
            (SceneCollectionChanged, self._on_scenes_changed),
            (SceneChanged, self._on_scene_changed),
            (RecordingStateChanged, self._on_recording_changed),
            (StreamingStateChanged, self._on_streaming_changed),
        )
        for kind, handler in handlers:
            self._subscriptions.enter_context(bus.subscribe(kind, handler))

    def stop(self) -> None:
        self._subscriptions.close()

    async def _refresh_cache(self) -> None:
        try:
            await self.cache.refresh()
        except ObsError as e:
            logger.warning("Scene cache refresh failed", error=str(e))

    async def _on_connected(self, event: Connected) -> None:
        self.state.connection = ConnectionStatus.CONNECTED
        logger.info("Connected to OBS", endpoint=event.endpoint)
        await self._refresh_cache()

    def _on_disconnected(self, event: Disconnected) -> None:
        self.state.connection = ConnectionStatus.DISCONNECTED
        logger.info("Disconnected from OBS", reason=event.reason)

    async def _on_scenes_changed(self, event: object) -> None:
        logger.debug("OBS scene list changed", event=type(event).__name__)
        await self._refresh_cache()

    def _on_scene_changed(self, event: SceneChanged) -> None:
        self.state.current_scene = event.name
        logger.info("OBS reports scene changed", scene=event.name)

    def _on_recording_changed(self, event: RecordingStateChanged) -> None:
        self.state.is_recording = event.active
        logger.info("OBS recording state", recording=event.active)

    def _on_streaming_changed(self, event: StreamingStateChanged) -> None:
        self.state.is_streaming = event.active
        logger.info("OBS streaming state", streaming=event.active)
