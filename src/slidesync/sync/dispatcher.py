"""
Sync Dispatcher: executes directive batches against the non-driving side.

The driving side is fixed at construction by the ControllerMode tag and
only that side's trigger is subscribed:

- PRESENTATION_DRIVEN: every SlideAdvanced reads the slide's notes and
  drives OBS (scene switches, delays, hotkeys, default scene, recording
  and streaming). When a batch neither switched nor said OBSStay, OBS
  falls back to the default scene.
- SCENE_DRIVEN: every SceneChanged replays the scene's overlay commands
  (next/previous/click) against the presentation.

Because the passive side's own events never reach the dispatcher, a
switch it performs cannot bounce back as a new trigger. Batches run in a
BatchSlot; a failed directive is logged and the rest of the batch still
runs.
"""

from __future__ import annotations

import asyncio
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from slidesync.commands.directives import (
    ChangeScene,
    ClickSlide,
    Delay,
    Directive,
    NextSlide,
    PresentationDirective,
    PreviousSlide,
    SendHotkey,
    SetDefaultScene,
    SetRecording,
    SetStreaming,
    SuppressFallback,
)
from slidesync.commands.parser import parse_overlay_text, parse_slide_notes
from slidesync.core.exceptions import (
    DirectiveExecutionError,
    ObsError,
    PresentationError,
)
from slidesync.core.state import ControllerMode
from slidesync.sync.context import SyncContext
from slidesync.sync.events import SceneChanged, SlideAdvanced
from slidesync.sync.scene_cache import SceneCache
from slidesync.sync.slot import BatchSlot

logger = structlog.get_logger()


@dataclass
class BatchResult:
    """Outcome of one batch. The flags are local to the batch."""

    directives: int = 0
    switched: bool = False
    suppress_fallback: bool = False
    fell_back: bool = False
    aborted: bool = False
    failures: list[DirectiveExecutionError] = field(default_factory=list)


class SyncDispatcher:
    """Turns triggers from the driving side into batches for the other side."""

    def __init__(
        self,
        context: SyncContext,
        cache: SceneCache,
        slot: Optional[BatchSlot] = None,
    ):
        self.context = context
        self.mode = context.settings.mode
        self.state = context.state
        self.cache = cache
        self.slot = slot or BatchSlot(
            context.settings.dispatch.overlap_policy, name=self.mode.value
        )
        self._subscriptions = ExitStack()

    def start(self) -> None:
        bus = self.context.bus
        if self.mode is ControllerMode.PRESENTATION_DRIVEN:
            self._subscriptions.enter_context(
                bus.subscribe(SlideAdvanced, self._on_slide_advanced)
            )
        else:
            self._subscriptions.enter_context(
                bus.subscribe(SceneChanged, self._on_scene_changed)
            )
        logger.info(
            "Dispatcher started",
            mode=self.mode.value,
            overlap_policy=self.slot.policy.value,
        )

    async def stop(self) -> None:
        self._subscriptions.close()
        await self.slot.stop()

    # =========================================================================
    # Triggers
    # =========================================================================

    def _submit(self, label: str, factory: Callable[[], Awaitable[object]]) -> None:
        async def _run() -> None:
            await factory()

        if not self.slot.submit(label, _run):
            self.state.batches_dropped += 1

    def _on_slide_advanced(self, event: SlideAdvanced) -> None:
        logger.info("Moved to slide", slide=event.index)
        self._submit(f"slide-{event.index}", self.run_slide_batch)

    def _on_scene_changed(self, event: SceneChanged) -> None:
        name = event.name
        self._submit(f"scene-{name}", lambda: self.run_scene_batch(name))

    # =========================================================================
    # Presentation-driven: slide notes -> OBS
    # =========================================================================

    async def run_slide_batch(self) -> BatchResult:
        """Read the current slide's notes and execute them against OBS."""
        try:
            notes = await self.context.presentation.current_slide_notes_text()
        except PresentationError as e:
            logger.warning("Slide notes unreadable, skipping slide", error=str(e))
            return BatchResult(aborted=True)

        return await self.execute_batch(parse_slide_notes(notes))

    async def execute_batch(self, directives: Sequence[Directive]) -> BatchResult:
        """Execute one slide's directives in order, then apply the fallback policy."""
        batch = BatchResult(
            directives=len(directives),
            suppress_fallback=any(isinstance(d, SuppressFallback) for d in directives),
        )

        for directive in directives:
            try:
                await self._execute(directive, batch)
            except (ObsError, PresentationError) as e:
                failure = DirectiveExecutionError(directive, e)
                batch.failures.append(failure)
                logger.warning("Directive failed, continuing batch", error=failure.message)

        if not batch.switched and not batch.suppress_fallback:
            try:
                batch.fell_back = await self._goto_default()
            except ObsError as e:
                logger.warning("Fallback to default scene failed", error=str(e))

        self.state.batches_run += 1
        logger.info(
            "Slide batch complete",
            directives=batch.directives,
            switched=batch.switched,
            stay=batch.suppress_fallback,
            fell_back=batch.fell_back,
            failures=len(batch.failures),
        )
        return batch

    async def _execute(self, directive: Directive, batch: BatchResult) -> None:
        scenes = self.context.scenes

        if isinstance(directive, ChangeScene):
            batch.switched = True
            await self._switch_to(directive.name)
        elif isinstance(directive, Delay):
            logger.debug("Delaying batch", ms=directive.ms)
            await asyncio.sleep(directive.seconds)
        elif isinstance(directive, SendHotkey):
            logger.info(
                "Sending hotkey", key=directive.key_id, modifiers=int(directive.modifiers)
            )
            await scenes.send_hotkey(directive.key_id, directive.modifiers)
        elif isinstance(directive, SetDefaultScene):
            self._set_default_scene(directive.name)
        elif isinstance(directive, SetRecording):
            await self._set_output("recording", scenes.set_recording, directive.active)
        elif isinstance(directive, SetStreaming):
            await self._set_output("streaming", scenes.set_streaming, directive.active)
        elif isinstance(directive, SuppressFallback):
            pass  # applied by the pre-scan in execute_batch

    async def _switch_to(self, name: str) -> bool:
        target = name
        if not self.cache.lookup_scene(name):
            default = self.state.default_scene
            if not self.cache.lookup_scene(default):
                logger.warning("Unknown scene requested, no default to use", scene=name)
                return False
            logger.info("Unknown scene requested, using default", scene=name, default=default)
            target = default

        return await self._request_switch(target)

    async def _request_switch(self, name: str) -> bool:
        if name == self.state.current_scene:
            logger.debug("Already on scene, not switching", scene=name)
            return False

        await self.context.scenes.change_scene(name)
        self.state.current_scene = name
        self.state.scene_switches += 1
        logger.info("Switched scene", scene=name)
        return True

    async def _goto_default(self) -> bool:
        default = self.state.default_scene
        if not self.cache.lookup_scene(default):
            return False
        logger.info("Requesting default scene", scene=default)
        return await self._request_switch(default)

    def _set_default_scene(self, name: str) -> None:
        if not self.cache.lookup_scene(name):
            logger.debug("Ignoring unknown default scene", scene=name)
            return
        self.state.default_scene = name
        logger.info("Default scene set", scene=name)

    async def _set_output(
        self,
        output: str,
        request: Callable[[bool], Awaitable[None]],
        active: bool,
    ) -> None:
        try:
            await request(active)
        except ObsError as e:
            # Typically "already running" / "not running".
            logger.debug("Output request ignored", output=output, active=active, error=str(e))
            return
        logger.info("Output toggled", output=output, active=active)

    # =========================================================================
    # Scene-driven: OBS overlay -> slides
    # =========================================================================

    async def run_scene_batch(self, scene_name: str) -> BatchResult:
        """Replay the scene's overlay commands against the presentation."""
        text = self.cache.lookup_overlay_text(scene_name)
        if text is None:
            logger.debug("No overlay commands for scene", scene=scene_name)
            return BatchResult()

        directives = parse_overlay_text(text)
        batch = BatchResult(directives=len(directives))
        for directive in directives:
            try:
                await self._advance(directive)
            except PresentationError as e:
                failure = DirectiveExecutionError(directive, e)
                batch.failures.append(failure)
                logger.warning("Slide command failed, continuing batch", error=failure.message)

        self.state.batches_run += 1
        logger.info(
            "Scene batch complete",
            scene=scene_name,
            directives=batch.directives,
            failures=len(batch.failures),
        )
        return batch

    async def _advance(self, directive: PresentationDirective) -> None:
        presentation = self.context.presentation
        if isinstance(directive, NextSlide):
            await presentation.advance_next()
        elif isinstance(directive, PreviousSlide):
            await presentation.advance_previous()
        elif isinstance(directive, ClickSlide):
            await presentation.click_current()
