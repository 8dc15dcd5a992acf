"""
Deck notes files.

A deck is a YAML file holding the speaker notes of each slide, in slide
order. Either a mapping with a ``slides`` list, or a bare list:

    slides:
      - notes: |
          OBSScene:Intro
          OBSDelay:500
      - notes: ["OBSScene:Camera", "OBSStay"]
      - "OBSRecord:Start"
      - {}            # slide without a notes placeholder

Multi-line notes are stored with ``\\r`` between lines, the line layout
the notes parser expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from slidesync.commands.parser import NOTES_LINE_SEPARATOR
from slidesync.core.exceptions import DeckError


@dataclass
class Deck:
    path: Path
    notes: list[Optional[str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.notes)


def _join_lines(lines: Any) -> str:
    if isinstance(lines, (list, tuple)):
        return NOTES_LINE_SEPARATOR.join(str(line) for line in lines)
    text = str(lines)
    return NOTES_LINE_SEPARATOR.join(text.replace("\r\n", "\n").split("\n"))


def _slide_notes(path: Path, position: int, entry: Any) -> Optional[str]:
    if entry is None:
        return None
    if isinstance(entry, dict):
        if "notes" not in entry:
            return None
        notes = entry["notes"]
        return "" if notes is None else _join_lines(notes)
    if isinstance(entry, (str, list, tuple)):
        return _join_lines(entry)
    raise DeckError(str(path), f"slide {position} has unsupported notes type {type(entry).__name__}")


def load_deck(path: Path | str) -> Deck:
    """Load a deck notes file. Raises DeckError for anything unusable."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise DeckError(str(path), e.strerror or str(e)) from e
    except yaml.YAMLError as e:
        raise DeckError(str(path), f"invalid YAML: {e}") from e

    if isinstance(data, dict):
        slides = data.get("slides")
    else:
        slides = data
    if not isinstance(slides, list):
        raise DeckError(str(path), "expected a list of slides")

    return Deck(
        path=path,
        notes=[_slide_notes(path, i, entry) for i, entry in enumerate(slides)],
    )
