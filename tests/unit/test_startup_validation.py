from pathlib import Path

import pytest

from slidesync.core.config import PresentationConfig, Settings
from slidesync.core.exceptions import ConfigError, DeckError
from slidesync.core.state import ControllerMode
from slidesync.ui.cli import _validate_startup_config


def test_startup_validation_requires_deck_for_live_presentation_mode() -> None:
    settings = Settings(mode=ControllerMode.PRESENTATION_DRIVEN)

    with pytest.raises(ConfigError):
        _validate_startup_config(settings, mock=False)


def test_startup_validation_allows_mock_presentation_without_deck() -> None:
    settings = Settings(mode=ControllerMode.PRESENTATION_DRIVEN)

    assert _validate_startup_config(settings, mock=True) is None


def test_startup_validation_allows_scene_mode_without_deck() -> None:
    settings = Settings(mode=ControllerMode.SCENE_DRIVEN)

    assert _validate_startup_config(settings, mock=False) is None


def test_startup_validation_rejects_unreadable_deck(tmp_path: Path) -> None:
    settings = Settings(presentation=PresentationConfig(deck_path=tmp_path / "missing.yaml"))

    with pytest.raises(DeckError):
        _validate_startup_config(settings, mock=False)


def test_startup_validation_rejects_malformed_deck_even_in_mock_mode(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("slides: nope\n", encoding="utf-8")
    settings = Settings(presentation=PresentationConfig(deck_path=deck))

    with pytest.raises(DeckError):
        _validate_startup_config(settings, mock=True)


def test_startup_validation_loads_valid_deck(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("- OBSScene:Intro\n- OBSStay\n", encoding="utf-8")
    settings = Settings(presentation=PresentationConfig(deck_path=deck))

    loaded = _validate_startup_config(settings, mock=False)

    assert loaded is not None
    assert loaded.notes == ["OBSScene:Intro", "OBSStay"]
