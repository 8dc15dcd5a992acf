"""
Shared State Definitions for slidesync.

This module defines the scene model reported by OBS and the mutable
sync state that the event handlers share: connection status, output
flags, the current scene and the fallback (default) scene.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ControllerMode(str, Enum):
    """Which side drives. Fixed for the lifetime of the process."""

    PRESENTATION_DRIVEN = "presentation"
    SCENE_DRIVEN = "scene"


class ConnectionStatus(Enum):
    """Link state to the scene controller."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass(frozen=True)
class SceneItem:
    """One source placed in a scene."""

    source_name: str
    internal_type: str  # OBS input kind, e.g. "text_gdiplus_v2"


@dataclass(frozen=True)
class Scene:
    """A scene and its items, in OBS order."""

    name: str
    items: tuple[SceneItem, ...] = ()


@dataclass
class SyncState:
    """
    Mutable state shared by the sync components.

    Only event handlers (and the batches they schedule) write to it.
    """

    connection: ConnectionStatus = ConnectionStatus.DISCONNECTED
    is_recording: bool = False
    is_streaming: bool = False
    current_scene: Optional[str] = None
    default_scene: Optional[str] = None
    batches_run: int = 0
    batches_dropped: int = 0
    scene_switches: int = 0

    @property
    def connected(self) -> bool:
        return self.connection is ConnectionStatus.CONNECTED
