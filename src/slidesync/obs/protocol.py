"""obs-websocket v5 message helpers."""

from __future__ import annotations

import base64
import hashlib
import json
from enum import IntEnum, IntFlag
from typing import Any, Optional

from slidesync.commands.directives import KeyModifier
from slidesync.core.exceptions import ObsError
from slidesync.sync.events import (
    Event,
    RecordingStateChanged,
    SceneChanged,
    SceneCollectionChanged,
    SceneListChanged,
    StreamingStateChanged,
)

RPC_VERSION = 1
DEFAULT_PORT = 4455

# Close code sent by OBS when the identify message fails authentication.
CLOSE_AUTHENTICATION_FAILED = 4009


class OpCode(IntEnum):
    HELLO = 0
    IDENTIFY = 1
    IDENTIFIED = 2
    REIDENTIFY = 3
    EVENT = 5
    REQUEST = 6
    REQUEST_RESPONSE = 7


class EventSubscription(IntFlag):
    GENERAL = 1 << 0
    CONFIG = 1 << 1
    SCENES = 1 << 2
    INPUTS = 1 << 3
    TRANSITIONS = 1 << 4
    FILTERS = 1 << 5
    OUTPUTS = 1 << 6


# Scene collection changes arrive under CONFIG, record/stream under OUTPUTS.
SUBSCRIPTIONS = (
    EventSubscription.GENERAL
    | EventSubscription.CONFIG
    | EventSubscription.SCENES
    | EventSubscription.OUTPUTS
)

OUTPUT_STARTED = "OBS_WEBSOCKET_OUTPUT_STARTED"
OUTPUT_STOPPED = "OBS_WEBSOCKET_OUTPUT_STOPPED"


def compute_authentication(password: str, salt: str, challenge: str) -> str:
    """
    Answer the hello challenge.

    secret = base64(sha256(password + salt))
    auth   = base64(sha256(secret + challenge))
    """
    secret = base64.b64encode(hashlib.sha256((password + salt).encode()).digest()).decode()
    return base64.b64encode(hashlib.sha256((secret + challenge).encode()).digest()).decode()


def encode(op: OpCode, data: dict[str, Any]) -> str:
    return json.dumps({"op": int(op), "d": data}, separators=(",", ":"))


def decode(raw: str | bytes) -> tuple[int, dict[str, Any]]:
    """Split a frame into (op, d). Raises ObsError on anything malformed."""
    try:
        message = json.loads(raw)
    except ValueError as e:
        raise ObsError(f"Malformed OBS frame: {e}") from e
    if not isinstance(message, dict) or "op" not in message:
        raise ObsError(f"Malformed OBS frame: {raw!r:.80}")
    data = message.get("d") or {}
    if not isinstance(data, dict):
        raise ObsError(f"Malformed OBS frame payload: {raw!r:.80}")
    return int(message["op"]), data


def build_identify(hello: dict[str, Any], password: str) -> str:
    data: dict[str, Any] = {
        "rpcVersion": min(RPC_VERSION, int(hello.get("rpcVersion", RPC_VERSION))),
        "eventSubscriptions": int(SUBSCRIPTIONS),
    }
    challenge = hello.get("authentication")
    if challenge:
        data["authentication"] = compute_authentication(
            password, challenge["salt"], challenge["challenge"]
        )
    return encode(OpCode.IDENTIFY, data)


def build_request(request_type: str, request_id: str, request_data: Optional[dict] = None) -> str:
    data: dict[str, Any] = {"requestType": request_type, "requestId": request_id}
    if request_data is not None:
        data["requestData"] = request_data
    return encode(OpCode.REQUEST, data)


def key_modifiers(modifiers: KeyModifier) -> dict[str, bool]:
    return {
        "shift": bool(modifiers & KeyModifier.SHIFT),
        "control": bool(modifiers & KeyModifier.CONTROL),
        "alt": bool(modifiers & KeyModifier.ALT),
        "command": bool(modifiers & KeyModifier.COMMAND),
    }


def translate_event(event_type: str, event_data: dict[str, Any]) -> Optional[Event]:
    """Map an OBS event onto a bus event; None for events we do not track."""
    if event_type == "CurrentProgramSceneChanged":
        return SceneChanged(event_data.get("sceneName", ""))
    if event_type in ("SceneListChanged", "SceneCreated", "SceneRemoved", "SceneNameChanged"):
        return SceneListChanged()
    if event_type == "CurrentSceneCollectionChanged":
        return SceneCollectionChanged(event_data.get("sceneCollectionName", ""))
    if event_type in ("RecordStateChanged", "StreamStateChanged"):
        # Transitional STARTING/STOPPING states are not reported.
        if event_data.get("outputState") not in (OUTPUT_STARTED, OUTPUT_STOPPED):
            return None
        active = bool(event_data.get("outputActive"))
        if event_type == "RecordStateChanged":
            return RecordingStateChanged(active)
        return StreamingStateChanged(active)
    return None
