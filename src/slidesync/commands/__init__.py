"""Embedded command language: directive types and parsers."""

from slidesync.commands.directives import (
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
    resolve_key_id,
)
from slidesync.commands.parser import parse_hotkey, parse_overlay_text, parse_slide_notes

__all__ = [
    "ChangeScene",
    "ClickSlide",
    "Delay",
    "Directive",
    "KeyModifier",
    "NextSlide",
    "PresentationDirective",
    "PreviousSlide",
    "SendHotkey",
    "SetDefaultScene",
    "SetRecording",
    "SetStreaming",
    "SuppressFallback",
    "resolve_key_id",
    "parse_hotkey",
    "parse_overlay_text",
    "parse_slide_notes",
]
