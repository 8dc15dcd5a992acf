"""OBS scene controller speaking obs-websocket v5."""

from slidesync.obs.client import ObsWebSocketClient
from slidesync.obs.protocol import OpCode, compute_authentication, translate_event

__all__ = [
    "ObsWebSocketClient",
    "OpCode",
    "compute_authentication",
    "translate_event",
]
