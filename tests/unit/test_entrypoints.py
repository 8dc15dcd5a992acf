import importlib
from pathlib import Path

import pytest
import tomllib
from click.testing import CliRunner
from pydantic import ValidationError

from slidesync.core.config import Settings
from slidesync.ui.cli import cli


def test_slidesync_entrypoint_target_is_importable() -> None:
    pyproject = tomllib.loads(Path("pyproject.toml").read_text(encoding="utf-8"))
    target = pyproject["project"]["scripts"]["slidesync"]
    module_name, symbol = target.split(":")

    module = importlib.import_module(module_name)
    entrypoint = getattr(module, symbol)

    assert callable(entrypoint)


def test_check_notes_prints_directives(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text(
        "slides:\n  - notes: \"OBSScene:Intro\"\n  - {}\n  - notes: [\"hello\", \"OBSDelay:250\"]\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(cli, ["check-notes", str(deck)], obj={})

    assert result.exit_code == 0, result.output
    assert "3 slides" in result.output
    assert "ChangeScene(name='Intro')" in result.output
    assert "[1] (no notes)" in result.output
    assert "Delay(ms=250)" in result.output


def test_check_notes_reports_bad_deck(tmp_path: Path) -> None:
    deck = tmp_path / "deck.yaml"
    deck.write_text("slides: 12\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["check-notes", str(deck)], obj={})

    assert result.exit_code == 1


def test_list_scenes_against_mock_obs() -> None:
    result = CliRunner().invoke(cli, ["list-scenes", "--mock"], obj={})

    assert result.exit_code == 0, result.output
    assert " * Camera" in result.output
    assert "   Intro" in result.output


def test_run_refuses_live_presentation_mode_without_deck() -> None:
    result = CliRunner().invoke(cli, ["run", "--mode", "presentation"], obj={})

    assert result.exit_code == 1
    assert "deck" in result.output


def test_configured_log_level_is_applied(tmp_path: Path) -> None:
    config = tmp_path / "slidesync.yaml"
    config.write_text("log_level: WARNING\n", encoding="utf-8")
    deck = tmp_path / "deck.yaml"
    deck.write_text("slides:\n  - notes: \"OBSStay\"\n", encoding="utf-8")
    runner = CliRunner()

    obj: dict = {}
    result = runner.invoke(cli, ["--config", str(config), "check-notes", str(deck)], obj=obj)
    assert result.exit_code == 0, result.output
    assert obj["log_level"] == "WARNING"

    obj = {}
    result = runner.invoke(cli, ["--debug", "--config", str(config), "check-notes", str(deck)], obj=obj)
    assert result.exit_code == 0, result.output
    assert obj["log_level"] == "DEBUG"


def test_unknown_log_level_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(log_level="LOUD")
