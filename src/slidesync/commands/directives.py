"""Directive values produced by the command parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Union

OBS_KEY_PREFIX = "OBS_KEY_"
OBS_KEY_NONE = "OBS_KEY_NONE"


class KeyModifier(IntFlag):
    """Hotkey modifier bits, laid out the way obs-websocket expects them."""

    NONE = 0
    SHIFT = 1
    ALT = 2
    CONTROL = 4
    COMMAND = 8


# Modifier characters accepted in OBSHotKeys values.
MODIFIER_CHARS = {
    "+": KeyModifier.SHIFT,
    "^": KeyModifier.CONTROL,
    "%": KeyModifier.ALT,
}


def resolve_key_id(key_name: str) -> str:
    """Map a key name from slide notes onto an OBS key id (``A`` -> ``OBS_KEY_A``)."""
    name = key_name.strip().upper()
    if not name:
        return OBS_KEY_NONE
    if name.startswith(OBS_KEY_PREFIX):
        return name
    return OBS_KEY_PREFIX + name


# =============================================================================
# Scene direction (slide notes -> OBS)
# =============================================================================


@dataclass(frozen=True)
class ChangeScene:
    name: str


@dataclass(frozen=True)
class Delay:
    ms: int

    @property
    def seconds(self) -> float:
        return self.ms / 1000.0


@dataclass(frozen=True)
class SendHotkey:
    key: str
    modifiers: KeyModifier = KeyModifier.NONE

    @property
    def key_id(self) -> str:
        return resolve_key_id(self.key)


@dataclass(frozen=True)
class SetDefaultScene:
    name: str


@dataclass(frozen=True)
class SetRecording:
    active: bool


@dataclass(frozen=True)
class SetStreaming:
    active: bool


@dataclass(frozen=True)
class SuppressFallback:
    """Stay on the current scene; skip the implicit switch to the default."""


Directive = Union[
    ChangeScene,
    Delay,
    SendHotkey,
    SetDefaultScene,
    SetRecording,
    SetStreaming,
    SuppressFallback,
]


# =============================================================================
# Presentation direction (OBS overlay -> slides)
# =============================================================================


@dataclass(frozen=True)
class NextSlide:
    pass


@dataclass(frozen=True)
class PreviousSlide:
    pass


@dataclass(frozen=True)
class ClickSlide:
    pass


PresentationDirective = Union[NextSlide, PreviousSlide, ClickSlide]
