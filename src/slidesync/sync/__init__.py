"""Sync engine: event bus, scene cache, watchdog and directive dispatch."""

from slidesync.sync.context import PresentationDriver, SceneController, SyncContext
from slidesync.sync.dispatcher import BatchResult, SyncDispatcher
from slidesync.sync.events import (
    Connected,
    Disconnected,
    EventBus,
    RecordingStateChanged,
    SceneChanged,
    SceneCollectionChanged,
    SceneListChanged,
    SlideAdvanced,
    StreamingStateChanged,
    Subscription,
)
from slidesync.sync.scene_cache import SceneCache
from slidesync.sync.slot import BatchSlot
from slidesync.sync.tracker import StateTracker
from slidesync.sync.watchdog import ConnectionWatchdog

__all__ = [
    "BatchResult",
    "BatchSlot",
    "Connected",
    "ConnectionWatchdog",
    "Disconnected",
    "EventBus",
    "PresentationDriver",
    "RecordingStateChanged",
    "SceneCache",
    "SceneChanged",
    "SceneCollectionChanged",
    "SceneController",
    "SceneListChanged",
    "SlideAdvanced",
    "StateTracker",
    "StreamingStateChanged",
    "Subscription",
    "SyncContext",
    "SyncDispatcher",
]
