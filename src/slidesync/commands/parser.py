"""
Command Language Parser.

Turns the text of a slide's notes, or of a scene's command overlay, into
an ordered list of directives. Parsing never fails: lines that are not
recognized, or whose value is malformed, are dropped.

Slide notes store one command per paragraph, separated by carriage
returns. Overlay text sources store one command per line, separated by
newlines.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from slidesync.commands.directives import (
    MODIFIER_CHARS,
    ChangeScene,
    ClickSlide,
    Delay,
    Directive,
    KeyModifier,
    NextSlide,
    PresentationDirective,
    PreviousSlide,
    SendHotkey,
    SetDefaultScene,
    SetRecording,
    SetStreaming,
    SuppressFallback,
)

logger = structlog.get_logger()

NOTES_LINE_SEPARATOR = "\r"
OVERLAY_LINE_SEPARATOR = "\n"

STAY_LITERAL = "obsstay"


def _parse_output_action(value: str) -> Optional[bool]:
    action = value.lower()
    if action == "start":
        return True
    if action == "stop":
        return False
    return None


def _scene(value: str) -> Optional[Directive]:
    return ChangeScene(value) if value else None


def _delay(value: str) -> Optional[Directive]:
    try:
        ms = int(value)
    except ValueError:
        logger.debug("Ignoring malformed delay", value=value)
        return None
    if ms < 0:
        logger.debug("Ignoring negative delay", value=value)
        return None
    return Delay(ms)


def _hotkey(value: str) -> Optional[Directive]:
    return parse_hotkey(value)


def _default(value: str) -> Optional[Directive]:
    return SetDefaultScene(value) if value else None


def _record(value: str) -> Optional[Directive]:
    active = _parse_output_action(value)
    return None if active is None else SetRecording(active)


def _stream(value: str) -> Optional[Directive]:
    active = _parse_output_action(value)
    return None if active is None else SetStreaming(active)


# Keyword (lower-cased, colon included) -> value parser
_NOTES_KEYWORDS: dict[str, Callable[[str], Optional[Directive]]] = {
    "obsscene:": _scene,
    "obsdelay:": _delay,
    "obshotkeys:": _hotkey,
    "obsdefault:": _default,
    "obsrecord:": _record,
    "obsstream:": _stream,
}

_OVERLAY_LITERALS: dict[str, type] = {
    "next_slide": NextSlide,
    "previous_slide": PreviousSlide,
    "click_slide": ClickSlide,
}


def parse_hotkey(value: str) -> Optional[SendHotkey]:
    """
    Parse an ``OBSHotKeys`` value of the form ``modifiers|keyName``.

    Empty segments are discarded, so ``|A`` and ``A`` both name key ``A``
    without modifiers. Unknown modifier characters are ignored. Returns
    None when no key name is present.
    """
    parts = [part for part in value.strip().split("|") if part]
    if not parts:
        return None

    if len(parts) == 1:
        return SendHotkey(key=parts[0].strip())

    modifiers = KeyModifier.NONE
    for char in parts[0]:
        modifiers |= MODIFIER_CHARS.get(char, KeyModifier.NONE)
    return SendHotkey(key=parts[1].strip(), modifiers=modifiers)


def _parse_notes_line(line: str) -> Optional[Directive]:
    lowered = line.lower()

    if lowered == STAY_LITERAL:
        return SuppressFallback()

    for keyword, build in _NOTES_KEYWORDS.items():
        if lowered.startswith(keyword):
            return build(line[len(keyword):].strip())

    return None


def parse_slide_notes(text: Optional[str]) -> list[Directive]:
    """Parse slide notes into scene-direction directives, in order."""
    if not text or not text.strip():
        return []

    directives: list[Directive] = []
    for raw in text.split(NOTES_LINE_SEPARATOR):
        line = raw.strip()
        if not line:
            continue
        directive = _parse_notes_line(line)
        if directive is not None:
            directives.append(directive)
    return directives


def parse_overlay_text(text: Optional[str]) -> list[PresentationDirective]:
    """Parse a scene's overlay text into presentation directives, in order."""
    if not text or not text.strip():
        return []

    directives: list[PresentationDirective] = []
    for raw in text.split(OVERLAY_LINE_SEPARATOR):
        kind = _OVERLAY_LITERALS.get(raw.strip().lower())
        if kind is not None:
            directives.append(kind())
    return directives
