"""
Configuration Management for slidesync.

Uses Pydantic Settings for type-safe configuration with environment
variable support and YAML file loading.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from slidesync.core.state import ControllerMode


class OverlapPolicy(str, Enum):
    """What happens to a trigger that arrives while a batch is running."""

    QUEUE = "queue"
    DROP = "drop"


class ObsConfig(BaseModel):
    """OBS websocket connection configuration."""
    host: str = "127.0.0.1"
    port: int = 4455
    password: str = ""
    request_timeout_s: float = 5.0

    @property
    def endpoint(self) -> str:
        return f"ws://{self.host}:{self.port}"


class WatchdogConfig(BaseModel):
    """Connection watchdog configuration."""
    reconnect_interval_s: float = 5.0
    connect_on_start: bool = True


class OverlayConfig(BaseModel):
    """Where the per-scene command overlay lives."""
    source_prefix: str = "ppt_commands"
    # text_gdiplus_v2 on Windows, text_ft2_source_v2 elsewhere
    input_kinds: List[str] = Field(
        default=["text_gdiplus_v2", "text_ft2_source_v2"]
    )


class DispatchConfig(BaseModel):
    """Directive batch dispatch configuration."""
    overlap_policy: OverlapPolicy = OverlapPolicy.QUEUE


class PresentationConfig(BaseModel):
    """Keyboard presentation driver configuration."""
    deck_path: Optional[Path] = None  # YAML speaker notes
    next_key: str = "right"
    previous_key: str = "left"
    click_key: str = "space"


class Settings(BaseSettings):
    """
    Main application settings.

    Can be configured via:
    - Environment variables (prefixed with SLIDESYNC_)
    - YAML config file
    - Direct instantiation
    """

    model_config = SettingsConfigDict(
        env_prefix="SLIDESYNC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    mode: ControllerMode = ControllerMode.PRESENTATION_DRIVEN

    # Component configs
    obs: ObsConfig = Field(default_factory=ObsConfig)
    watchdog: WatchdogConfig = Field(default_factory=WatchdogConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    presentation: PresentationConfig = Field(default_factory=PresentationConfig)

    # Debug
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
