"""
Scene Cache: what OBS scenes exist, and which slide commands each carries.

The cache is additive. A refresh merges the scene list reported by OBS
into what is already known and never overwrites an existing entry, so
names validated once stay valid for the session. Each scene may hold one
command overlay, a text source whose name starts with a reserved prefix;
its text is read once and re-parsed whenever the scene goes live.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from slidesync.core.config import OverlayConfig
from slidesync.core.exceptions import ObsError
from slidesync.core.state import Scene, SceneItem, SyncState
from slidesync.sync.context import SceneController

logger = structlog.get_logger()


class SceneCache:
    """Write-once-per-key store of scenes and their overlay text."""

    def __init__(self, scenes: SceneController, state: SyncState, config: OverlayConfig):
        self.scenes = scenes
        self.state = state
        self.config = config
        self._prefix = config.source_prefix.lower()
        self._input_kinds = {kind.lower() for kind in config.input_kinds}

        self._scenes: dict[str, Scene] = {}
        self._overlay_text: dict[str, str] = {}
        self._refresh_lock = asyncio.Lock()

    def __contains__(self, name: object) -> bool:
        return name in self._scenes

    def __len__(self) -> int:
        return len(self._scenes)

    async def refresh(self) -> int:
        """
        Merge the current OBS scene list into the cache.

        Only effective while connected. Returns the number of scenes that
        were new to the cache. Concurrent refreshes run one after another.
        """
        async with self._refresh_lock:
            return await self._merge()

    async def _merge(self) -> int:
        if not self.state.connected:
            logger.debug("Skipping scene refresh, not connected")
            return 0

        reported = await self.scenes.list_scenes()
        added = 0
        for scene in reported:
            if scene.name not in self._scenes:
                self._scenes[scene.name] = scene
                added += 1

        for name, scene in list(self._scenes.items()):
            if name in self._overlay_text:
                continue
            overlay = self.find_overlay_item(scene)
            if overlay is None:
                continue
            try:
                text = await self.scenes.read_overlay_text(overlay.source_name)
            except ObsError as e:
                # Retried on the next refresh.
                logger.warning(
                    "Could not read scene overlay",
                    scene=name,
                    source=overlay.source_name,
                    error=str(e),
                )
                continue
            self._overlay_text[name] = text
            logger.debug("Cached scene overlay", scene=name, source=overlay.source_name)

        logger.info(
            "Scene cache refreshed",
            reported=len(reported),
            added=added,
            total=len(self._scenes),
            overlays=len(self._overlay_text),
        )
        return added

    def find_overlay_item(self, scene: Scene) -> Optional[SceneItem]:
        """First item that looks like the scene's command overlay."""
        for item in scene.items:
            if (
                item.source_name.lower().startswith(self._prefix)
                and item.internal_type.lower() in self._input_kinds
            ):
                return item
        return None

    def lookup_overlay_text(self, scene_name: str) -> Optional[str]:
        return self._overlay_text.get(scene_name)

    def lookup_scene(self, name: Optional[str]) -> bool:
        return name is not None and name in self._scenes

    def get_scene(self, name: str) -> Optional[Scene]:
        return self._scenes.get(name)

    def scene_names(self) -> list[str]:
        """Scene names in first-seen order."""
        return list(self._scenes.keys())
