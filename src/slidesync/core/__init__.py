"""Core system components for slidesync."""

from slidesync.core.state import (
    ConnectionStatus,
    ControllerMode,
    Scene,
    SceneItem,
    SyncState,
)
from slidesync.core.config import Settings
from slidesync.core.exceptions import (
    SlideSyncError,
    ObsError,
    ObsConnectionError,
    ObsRequestError,
    PresentationError,
    ConfigError,
)

__all__ = [
    "ConnectionStatus",
    "ControllerMode",
    "Scene",
    "SceneItem",
    "SyncState",
    "Settings",
    "SlideSyncError",
    "ObsError",
    "ObsConnectionError",
    "ObsRequestError",
    "PresentationError",
    "ConfigError",
]
