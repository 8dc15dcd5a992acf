from __future__ import annotations

import base64
import hashlib
import json

import pytest

from slidesync.commands.directives import KeyModifier
from slidesync.core.exceptions import ObsError
from slidesync.obs import protocol
from slidesync.obs.protocol import OpCode
from slidesync.sync.events import (
    RecordingStateChanged,
    SceneChanged,
    SceneCollectionChanged,
    SceneListChanged,
    StreamingStateChanged,
)


def _sha256_b64(text: str) -> str:
    return base64.b64encode(hashlib.sha256(text.encode()).digest()).decode()


def test_authentication_is_salted_then_challenged() -> None:
    secret = _sha256_b64("hunter2" + "salty")
    expected = _sha256_b64(secret + "chal")

    assert protocol.compute_authentication("hunter2", "salty", "chal") == expected


def test_identify_includes_authentication_only_when_challenged() -> None:
    plain = json.loads(protocol.build_identify({"rpcVersion": 1}, ""))
    assert plain["op"] == OpCode.IDENTIFY
    assert "authentication" not in plain["d"]
    assert plain["d"]["eventSubscriptions"] == int(protocol.SUBSCRIPTIONS)

    hello = {"rpcVersion": 1, "authentication": {"salt": "s", "challenge": "c"}}
    challenged = json.loads(protocol.build_identify(hello, "pw"))
    assert challenged["d"]["authentication"] == protocol.compute_authentication("pw", "s", "c")


def test_request_frame_layout() -> None:
    frame = json.loads(protocol.build_request("SetCurrentProgramScene", "42", {"sceneName": "Intro"}))

    assert frame == {
        "op": 6,
        "d": {
            "requestType": "SetCurrentProgramScene",
            "requestId": "42",
            "requestData": {"sceneName": "Intro"},
        },
    }
    assert "requestData" not in json.loads(protocol.build_request("StartRecord", "1"))["d"]


def test_decode_rejects_malformed_frames() -> None:
    assert protocol.decode('{"op": 5, "d": {"eventType": "X"}}') == (5, {"eventType": "X"})

    for raw in ("not json", "[1, 2]", '{"d": {}}', '{"op": 7, "d": 3}'):
        with pytest.raises(ObsError):
            protocol.decode(raw)


def test_key_modifiers_payload() -> None:
    assert protocol.key_modifiers(KeyModifier.SHIFT | KeyModifier.ALT) == {
        "shift": True,
        "control": False,
        "alt": True,
        "command": False,
    }


def test_events_are_translated() -> None:
    assert protocol.translate_event("CurrentProgramSceneChanged", {"sceneName": "Intro"}) == SceneChanged("Intro")
    assert protocol.translate_event("SceneListChanged", {"scenes": []}) == SceneListChanged()
    assert protocol.translate_event("SceneCreated", {"sceneName": "New"}) == SceneListChanged()
    assert protocol.translate_event(
        "CurrentSceneCollectionChanged", {"sceneCollectionName": "Show"}
    ) == SceneCollectionChanged("Show")
    assert protocol.translate_event(
        "RecordStateChanged", {"outputActive": True, "outputState": protocol.OUTPUT_STARTED}
    ) == RecordingStateChanged(True)
    assert protocol.translate_event(
        "StreamStateChanged", {"outputActive": False, "outputState": protocol.OUTPUT_STOPPED}
    ) == StreamingStateChanged(False)


def test_transitional_and_unknown_events_are_ignored() -> None:
    assert protocol.translate_event(
        "RecordStateChanged", {"outputActive": False, "outputState": "OBS_WEBSOCKET_OUTPUT_STARTING"}
    ) is None
    assert protocol.translate_event("InputVolumeChanged", {}) is None
