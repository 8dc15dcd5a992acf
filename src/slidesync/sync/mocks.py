"""
Mock Capabilities for Testing.

Provides in-memory implementations of the scene controller and the
presentation driver, for running the engine without OBS or a slide
show and for exercising the sync components in tests.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from slidesync.commands.directives import KeyModifier
from slidesync.core.exceptions import (
    ObsConnectionError,
    ObsRequestError,
    SlideNotesUnavailableError,
)
from slidesync.core.state import Scene, SceneItem
from slidesync.sync.events import (
    Connected,
    Disconnected,
    EventBus,
    RecordingStateChanged,
    SceneChanged,
    SceneListChanged,
    SlideAdvanced,
    StreamingStateChanged,
)

logger = structlog.get_logger()

# obs-websocket status codes used by the mock
OUTPUT_RUNNING = 500
OUTPUT_NOT_RUNNING = 501
NOT_CONNECTED = 207


class MockSceneController:
    """
    In-memory OBS.

    Scenes are plain names; a scene may carry overlay text, which is
    exposed as a ``ppt_commands`` text source in that scene. Every
    request is recorded in ``requests`` as ``(request, argument)``.
    """

    def __init__(
        self,
        bus: EventBus,
        scenes: Optional[dict[str, Optional[str]]] = None,
        reachable: bool = True,
        overlay_kind: str = "text_gdiplus_v2",
    ):
        self.bus = bus
        self.reachable = reachable
        self.overlay_kind = overlay_kind
        self.requests: list[tuple[str, object]] = []
        self.connect_attempts = 0
        self.current_scene: Optional[str] = None
        self.recording = False
        self.streaming = False
        self._connected = False
        self._scenes: dict[str, Optional[str]] = {}
        for name, overlay in (scenes or {}).items():
            self.set_scene(name, overlay)

    @property
    def is_connected(self) -> bool:
        return self._connected

    def set_scene(self, name: str, overlay: Optional[str] = None) -> None:
        """Add or replace a scene (does not publish anything)."""
        self._scenes[name] = overlay

    def _overlay_source(self, name: str) -> str:
        return f"ppt_commands {name}"

    def _require_connection(self, request: str) -> None:
        if not self._connected:
            raise ObsRequestError(request, NOT_CONNECTED, "not connected")

    async def connect(self, endpoint: str, credential: str) -> None:
        self.connect_attempts += 1
        if not self.reachable:
            raise ObsConnectionError(endpoint, "mock OBS unreachable")
        self._connected = True
        self.bus.publish(Connected(endpoint=endpoint))

    async def disconnect(self) -> None:
        if self._connected:
            self._connected = False
            self.bus.publish(Disconnected(reason="client closed"))

    def drop_connection(self, reason: str = "mock link lost") -> None:
        """Simulate OBS going away."""
        logger.debug("Mock OBS dropping connection", reason=reason)
        self._connected = False
        self.bus.publish(Disconnected(reason=reason))

    async def list_scenes(self) -> list[Scene]:
        self._require_connection("GetSceneList")
        scenes = []
        for name, overlay in self._scenes.items():
            items: tuple[SceneItem, ...] = (SceneItem(f"{name} camera", "dshow_input"),)
            if overlay is not None:
                items += (SceneItem(self._overlay_source(name), self.overlay_kind),)
            scenes.append(Scene(name=name, items=items))
        return scenes

    async def change_scene(self, name: str) -> None:
        self._require_connection("SetCurrentProgramScene")
        self.requests.append(("change_scene", name))
        if name not in self._scenes:
            raise ObsRequestError("SetCurrentProgramScene", 600, f"No source was found by the name of `{name}`")
        self.current_scene = name
        self.bus.publish(SceneChanged(name))

    def switch_scene_externally(self, name: str) -> None:
        """Simulate the operator switching scenes inside OBS."""
        self.current_scene = name
        self.bus.publish(SceneChanged(name))

    def add_scene_externally(self, name: str, overlay: Optional[str] = None) -> None:
        self.set_scene(name, overlay)
        self.bus.publish(SceneListChanged())

    async def read_overlay_text(self, source_name: str) -> str:
        self._require_connection("GetInputSettings")
        self.requests.append(("read_overlay_text", source_name))
        for name, overlay in self._scenes.items():
            if overlay is not None and self._overlay_source(name) == source_name:
                return overlay
        raise ObsRequestError("GetInputSettings", 600, f"No input named {source_name}")

    async def send_hotkey(self, key_id: str, modifiers: KeyModifier) -> None:
        self._require_connection("TriggerHotkeyByKeySequence")
        self.requests.append(("send_hotkey", (key_id, modifiers)))

    async def set_recording(self, active: bool) -> None:
        self._require_connection("StartRecord" if active else "StopRecord")
        self.requests.append(("set_recording", active))
        if active == self.recording:
            raise ObsRequestError(
                "StartRecord" if active else "StopRecord",
                OUTPUT_RUNNING if active else OUTPUT_NOT_RUNNING,
            )
        self.recording = active
        self.bus.publish(RecordingStateChanged(active))

    async def set_streaming(self, active: bool) -> None:
        self._require_connection("StartStream" if active else "StopStream")
        self.requests.append(("set_streaming", active))
        if active == self.streaming:
            raise ObsRequestError(
                "StartStream" if active else "StopStream",
                OUTPUT_RUNNING if active else OUTPUT_NOT_RUNNING,
            )
        self.streaming = active
        self.bus.publish(StreamingStateChanged(active))

    def switches(self) -> list[str]:
        """Scene names requested, in order."""
        return [arg for req, arg in self.requests if req == "change_scene"]  # type: ignore[misc]


class MockPresentationDriver:
    """
    In-memory slide show.

    Holds one notes string per slide. Advancing publishes SlideAdvanced,
    just like the keyboard driver. Actions are recorded in ``actions``.
    """

    def __init__(self, bus: EventBus, notes: Sequence[Optional[str]] = ()):
        self.bus = bus
        self.notes = list(notes)
        self.index = 0
        self.clicks = 0
        self.actions: list[str] = []

    async def advance_next(self) -> None:
        self.actions.append("next")
        if self.index < len(self.notes) - 1:
            self.index += 1
            self.clicks = 0
        self.bus.publish(SlideAdvanced(self.index))

    async def advance_previous(self) -> None:
        self.actions.append("previous")
        if self.index > 0:
            self.index -= 1
            self.clicks = 0
        self.bus.publish(SlideAdvanced(self.index))

    async def click_current(self) -> None:
        self.actions.append("click")
        self.clicks += 1

    async def current_slide_notes_text(self) -> str:
        if not self.notes:
            raise SlideNotesUnavailableError(None, "mock deck is empty")
        text = self.notes[self.index]
        if text is None:
            raise SlideNotesUnavailableError(self.index, "slide has no notes placeholder")
        return text
