"""
slidesync: keep a slide deck and OBS scenes in lock-step

Either side drives. Slide notes carry scene commands for OBS; a text
overlay inside each OBS scene carries slide commands for the deck.
A watchdog keeps the OBS websocket link alive in the background.
"""

__version__ = "0.1.0"
__author__ = "slidesync contributors"

from slidesync.core.config import Settings
from slidesync.core.state import ControllerMode, SyncState

__all__ = [
    "ControllerMode",
    "SyncState",
    "Settings",
    "__version__",
]
