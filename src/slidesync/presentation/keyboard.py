"""
Keyboard presentation driver.

Moves a running slide show by pressing keys, the way a presenter remote
does, and serves speaker notes from the deck file loaded alongside it.
The slide index is tracked here since a slide show cannot be asked for
it over the keyboard.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import structlog

from slidesync.core.config import PresentationConfig
from slidesync.core.exceptions import SlideControlError, SlideNotesUnavailableError
from slidesync.presentation.deck import Deck
from slidesync.sync.events import EventBus, SlideAdvanced

logger = structlog.get_logger()


def press_key(key: str) -> None:
    import pyautogui

    # Moving the mouse into a screen corner aborts.
    pyautogui.FAILSAFE = True
    pyautogui.press(key)


class KeyboardPresentationDriver:
    """PresentationDriver that presses keys in the foreground slide show."""

    def __init__(
        self,
        bus: EventBus,
        deck: Deck,
        config: Optional[PresentationConfig] = None,
        press: Callable[[str], None] = press_key,
    ):
        self.bus = bus
        self.deck = deck
        self.config = config or PresentationConfig()
        self._press = press
        self.index = 0

    async def _send(self, action: str, key: str) -> None:
        try:
            await asyncio.to_thread(self._press, key)
        except Exception as e:
            raise SlideControlError(action, str(e)) from e
        logger.debug("Pressed key", action=action, key=key)

    async def advance_next(self) -> None:
        await self._send("next", self.config.next_key)
        if self.index < len(self.deck) - 1:
            self.index += 1
        self.bus.publish(SlideAdvanced(self.index))

    async def advance_previous(self) -> None:
        await self._send("previous", self.config.previous_key)
        if self.index > 0:
            self.index -= 1
        self.bus.publish(SlideAdvanced(self.index))

    async def click_current(self) -> None:
        await self._send("click", self.config.click_key)

    async def current_slide_notes_text(self) -> str:
        if not 0 <= self.index < len(self.deck):
            raise SlideNotesUnavailableError(self.index, "outside the deck")
        notes = self.deck.notes[self.index]
        if notes is None:
            raise SlideNotesUnavailableError(self.index, "slide has no notes")
        return notes
