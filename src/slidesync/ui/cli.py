"""
Command-Line Interface for slidesync.

Provides commands for running the sync engine, dry-running a deck's
speaker notes, and listing the scenes OBS reports.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

import click
import structlog

from slidesync import __version__
from slidesync.core.config import Settings
from slidesync.core.exceptions import ConfigError, SlideSyncError
from slidesync.core.state import ControllerMode
from slidesync.presentation.deck import Deck, load_deck

logger = structlog.get_logger()


def _load_settings(ctx: click.Context) -> Settings:
    if ctx.obj["config_path"]:
        settings = Settings.from_yaml(ctx.obj["config_path"])
    else:
        settings = Settings()
    settings.debug = ctx.obj["debug"]
    return settings


def _log_level(settings: Settings) -> str:
    """--debug wins over the configured level."""
    return "DEBUG" if settings.debug else settings.log_level


def _validate_startup_config(settings: Settings, mock: bool) -> Optional[Deck]:
    """
    Check the configuration before anything connects.

    Presentation-driven runs against a real slide show need the deck's
    speaker notes. Returns the loaded deck, if any.
    """
    deck_path = settings.presentation.deck_path
    if deck_path is None:
        if settings.mode is ControllerMode.PRESENTATION_DRIVEN and not mock:
            raise ConfigError(
                "Presentation-driven mode needs a deck notes file (--deck or presentation.deck_path)"
            )
        return None
    return load_deck(deck_path)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, config: Optional[str]) -> None:
    """
    slidesync - keep a slide deck and OBS scenes in step

    Slide notes drive OBS scenes, or a command overlay in each OBS scene
    drives the slides. The OBS websocket link is kept alive in the
    background.
    """
    ctx.ensure_object(dict)

    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config) if config else None

    # Configure logging
    log_level = _log_level(_load_settings(ctx))
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level)
        ),
    )
    ctx.obj["log_level"] = log_level


def _start_console_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue) -> None:
    def _read() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line.strip().lower())

    threading.Thread(target=_read, name="console-reader", daemon=True).start()


async def _run_engine(settings: Settings, mock: bool, deck: Optional[Deck]) -> None:
    from slidesync.sync.builder import build_sync_engine

    engine = build_sync_engine(settings, mock=mock, deck=deck)
    runner = asyncio.create_task(engine.run_forever(), name="engine")

    if settings.mode is ControllerMode.PRESENTATION_DRIVEN:
        lines: asyncio.Queue = asyncio.Queue()
        _start_console_reader(asyncio.get_running_loop(), lines)
        presentation = engine.context.presentation
        while not runner.done():
            getter = asyncio.ensure_future(lines.get())
            done, _ = await asyncio.wait({getter, runner}, return_when=asyncio.FIRST_COMPLETED)
            if getter not in done:
                getter.cancel()
                break
            line = getter.result()
            try:
                if line == "p":
                    await presentation.advance_previous()
                elif line == "q":
                    engine.request_stop()
                else:
                    await presentation.advance_next()
            except SlideSyncError as e:
                logger.warning("Slide control failed", error=str(e))

    await runner


@cli.command()
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ControllerMode]),
    default=None,
    help="Which side drives (default from config: presentation)",
)
@click.option("--mock", is_flag=True, help="Use in-memory OBS and slide show")
@click.option(
    "--deck",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with each slide's speaker notes",
)
@click.pass_context
def run(ctx: click.Context, mode: Optional[str], mock: bool, deck: Optional[str]) -> None:
    """Run the sync engine until Ctrl+C."""
    settings = _load_settings(ctx)
    if mode is not None:
        settings.mode = ControllerMode(mode)
    if deck is not None:
        settings.presentation.deck_path = Path(deck)

    click.echo(f"slidesync v{__version__}")
    click.echo("=" * 50)

    try:
        loaded = _validate_startup_config(settings, mock=mock)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Mode: {settings.mode.value}-driven ({'Mock' if mock else 'Live'})")
    click.echo(f"OBS: {settings.obs.endpoint}")
    if settings.mode is ControllerMode.PRESENTATION_DRIVEN:
        click.echo("Enter: next slide, p: previous slide, q: quit")
    click.echo("Press Ctrl+C to stop.")
    click.echo()

    try:
        asyncio.run(_run_engine(settings, mock, loaded))
    except KeyboardInterrupt:
        click.echo("\nShutting down...")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if ctx.obj["debug"]:
            raise
        sys.exit(1)


@cli.command("check-notes")
@click.argument("deck", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def check_notes(ctx: click.Context, deck: str) -> None:
    """Parse every slide's notes and print the resulting directives."""
    from slidesync.commands.parser import parse_slide_notes

    try:
        loaded = load_deck(deck)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"{loaded.path}: {len(loaded)} slides")
    click.echo("-" * 60)
    for index, notes in enumerate(loaded.notes):
        if notes is None:
            click.echo(f"[{index}] (no notes)")
            continue
        directives = parse_slide_notes(notes)
        click.echo(f"[{index}] {len(directives)} directive(s)")
        for directive in directives:
            click.echo(f"      {directive!r}")


async def _list_scenes(settings: Settings, mock: bool) -> Optional[list[tuple[str, bool]]]:
    from slidesync.sync.builder import build_sync_engine

    settings.watchdog.connect_on_start = True
    engine = build_sync_engine(settings, mock=mock, deck=Deck(path=Path(".")))
    await engine.start()
    try:
        await engine.context.bus.drain(timeout=settings.obs.request_timeout_s * 4)
        if not engine.state.connected:
            return None
        return [
            (name, engine.cache.lookup_overlay_text(name) is not None)
            for name in engine.cache.scene_names()
        ]
    finally:
        await engine.stop()


@cli.command("list-scenes")
@click.option("--mock", is_flag=True, help="Use in-memory OBS")
@click.pass_context
def list_scenes(ctx: click.Context, mock: bool) -> None:
    """Connect once and list OBS scenes with their command overlays."""
    settings = _load_settings(ctx)

    try:
        scenes = asyncio.run(_list_scenes(settings, mock))
    except (SlideSyncError, asyncio.TimeoutError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if scenes is None:
        click.echo(f"Error: could not connect to OBS at {settings.obs.endpoint}", err=True)
        sys.exit(1)

    click.echo(f"Scenes at {settings.obs.endpoint}:")
    click.echo("-" * 60)
    for name, has_overlay in scenes:
        marker = " *" if has_overlay else "  "
        click.echo(f"{marker} {name}")
    if not scenes:
        click.echo("  (no scenes found)")
    click.echo()
    click.echo("* scene carries slide commands")


def main() -> None:
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
