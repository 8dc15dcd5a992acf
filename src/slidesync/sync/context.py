"""
Capabilities consumed by the sync engine, and the context that carries them.

The engine never reaches for globals: one SyncContext is built at startup
and handed to every component.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from slidesync.commands.directives import KeyModifier
from slidesync.core.config import Settings
from slidesync.core.state import Scene, SyncState
from slidesync.sync.events import EventBus


@runtime_checkable
class PresentationDriver(Protocol):
    """Something that shows slides and can tell us the current slide's notes."""

    async def advance_next(self) -> None: ...

    async def advance_previous(self) -> None: ...

    async def click_current(self) -> None: ...

    async def current_slide_notes_text(self) -> str: ...


@runtime_checkable
class SceneController(Protocol):
    """Something that owns scenes (OBS). Publishes its events on the bus."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self, endpoint: str, credential: str) -> None: ...

    async def disconnect(self) -> None: ...

    async def list_scenes(self) -> list[Scene]: ...

    async def change_scene(self, name: str) -> None: ...

    async def read_overlay_text(self, source_name: str) -> str: ...

    async def send_hotkey(self, key_id: str, modifiers: KeyModifier) -> None: ...

    async def set_recording(self, active: bool) -> None: ...

    async def set_streaming(self, active: bool) -> None: ...


@dataclass
class SyncContext:
    """Everything a sync component may touch."""

    settings: Settings
    bus: EventBus
    presentation: PresentationDriver
    scenes: SceneController
    state: SyncState = field(default_factory=SyncState)
