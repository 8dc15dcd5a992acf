"""
OBS scene controller over obs-websocket v5.

One websocket per connection. A receive task routes request responses to
the waiting callers by requestId and translates OBS events onto the bus.
Connected is published once identify succeeds; Disconnected once the
socket closes, whichever side closed it.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Callable, Optional

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from slidesync.commands.directives import KeyModifier
from slidesync.core.exceptions import (
    ObsAuthenticationError,
    ObsConnectionError,
    ObsError,
    ObsRequestError,
    ObsTimeoutError,
)
from slidesync.core.state import Scene, SceneItem
from slidesync.obs import protocol
from slidesync.obs.protocol import OpCode
from slidesync.sync.events import Connected, Disconnected, EventBus

logger = structlog.get_logger()


def _close_code(error: ConnectionClosed) -> Optional[int]:
    close = error.rcvd
    return close.code if close is not None else None


class ObsWebSocketClient:
    """SceneController backed by a live OBS instance."""

    def __init__(
        self,
        bus: EventBus,
        request_timeout_s: float = 5.0,
        connector: Optional[Callable[..., Any]] = None,
    ):
        self.bus = bus
        self.request_timeout_s = request_timeout_s
        self._connector = connector or websockets.connect

        self.endpoint = ""
        self._ws: Any = None
        self._receiver: Optional[asyncio.Task] = None
        self._pending: dict[str, asyncio.Future] = {}

        # Stats
        self.requests_sent = 0
        self.events_received = 0

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self, endpoint: str, credential: str) -> None:
        """Open the socket and run the hello/identify handshake."""
        if self.is_connected:
            return
        self.endpoint = endpoint

        try:
            ws = await asyncio.wait_for(
                self._connector(endpoint, max_size=2**24),
                self.request_timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise ObsConnectionError(endpoint, "connect timed out") from e
        except (OSError, WebSocketException) as e:
            raise ObsConnectionError(endpoint, str(e) or type(e).__name__) from e

        try:
            await asyncio.wait_for(self._identify(ws, credential), self.request_timeout_s)
        except BaseException:
            await ws.close()
            raise

        self._ws = ws
        self._receiver = asyncio.get_running_loop().create_task(
            self._receive_loop(ws), name="obs-receiver"
        )
        logger.info("OBS websocket identified", endpoint=endpoint)
        self.bus.publish(Connected(endpoint=endpoint))

    async def _identify(self, ws: Any, credential: str) -> None:
        try:
            op, hello = protocol.decode(await ws.recv())
            if op != OpCode.HELLO:
                raise ObsConnectionError(self.endpoint, f"expected Hello, got op {op}")
            if hello.get("authentication") and not credential:
                raise ObsAuthenticationError(self.endpoint)

            try:
                identify = protocol.build_identify(hello, credential)
            except (KeyError, TypeError, ValueError) as e:
                raise ObsConnectionError(self.endpoint, f"malformed Hello: {e!r}") from e
            await ws.send(identify)

            op, identified = protocol.decode(await ws.recv())
            if op != OpCode.IDENTIFIED:
                raise ObsConnectionError(self.endpoint, f"expected Identified, got op {op}")
        except ConnectionClosed as e:
            if _close_code(e) == protocol.CLOSE_AUTHENTICATION_FAILED:
                raise ObsAuthenticationError(self.endpoint) from e
            raise ObsConnectionError(self.endpoint, f"closed during handshake: {e}") from e

        logger.debug(
            "OBS handshake complete",
            rpc_version=identified.get("negotiatedRpcVersion"),
            obs_websocket=hello.get("obsWebSocketVersion"),
        )

    async def disconnect(self) -> None:
        ws = self._ws
        if ws is None:
            return
        await ws.close()
        receiver = self._receiver
        if receiver is not None:
            await asyncio.gather(receiver, return_exceptions=True)

    async def _receive_loop(self, ws: Any) -> None:
        reason = "connection closed"
        try:
            while True:
                raw = await ws.recv()
                try:
                    op, data = protocol.decode(raw)
                except ObsError as e:
                    logger.warning("Ignoring malformed OBS frame", error=str(e))
                    continue
                if op == OpCode.REQUEST_RESPONSE:
                    self._resolve(data)
                elif op == OpCode.EVENT:
                    self._dispatch_event(data)
        except ConnectionClosed as e:
            reason = str(e)
        except asyncio.CancelledError:
            reason = "receiver cancelled"
            raise
        finally:
            self._connection_lost(reason)

    def _connection_lost(self, reason: str) -> None:
        self._ws = None
        self._receiver = None
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(ObsConnectionError(self.endpoint, reason))
        logger.info("OBS websocket closed", endpoint=self.endpoint, reason=reason)
        self.bus.publish(Disconnected(reason=reason))

    def _resolve(self, data: dict[str, Any]) -> None:
        future = self._pending.get(data.get("requestId", ""))
        if future is None or future.done():
            logger.debug("Unmatched OBS response", request_id=data.get("requestId"))
            return
        future.set_result(data)

    def _dispatch_event(self, data: dict[str, Any]) -> None:
        self.events_received += 1
        event_type = data.get("eventType", "")
        event = protocol.translate_event(event_type, data.get("eventData") or {})
        if event is None:
            return
        logger.debug("OBS event", event_type=event_type)
        self.bus.publish(event)

    # =========================================================================
    # Requests
    # =========================================================================

    async def request(self, request_type: str, request_data: Optional[dict] = None) -> dict[str, Any]:
        """Send one request and wait for its response data."""
        ws = self._ws
        if ws is None:
            raise ObsConnectionError(self.endpoint, "not connected")

        request_id = uuid.uuid4().hex
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            try:
                await ws.send(protocol.build_request(request_type, request_id, request_data))
            except ConnectionClosed as e:
                raise ObsConnectionError(self.endpoint, str(e)) from e
            self.requests_sent += 1
            try:
                response = await asyncio.wait_for(future, self.request_timeout_s)
            except asyncio.TimeoutError as e:
                raise ObsTimeoutError(request_type, self.request_timeout_s) from e
        finally:
            self._pending.pop(request_id, None)

        status = response.get("requestStatus") or {}
        if not status.get("result", False):
            raise ObsRequestError(request_type, int(status.get("code", 0)), status.get("comment"))
        return response.get("responseData") or {}

    async def list_scenes(self) -> list[Scene]:
        data = await self.request("GetSceneList")
        # OBS lists scenes bottom-up; present them in UI order.
        reported = sorted(
            data.get("scenes", []),
            key=lambda s: s.get("sceneIndex", 0),
            reverse=True,
        )
        scenes = []
        for entry in reported:
            name = entry["sceneName"]
            items = await self.request("GetSceneItemList", {"sceneName": name})
            scenes.append(
                Scene(
                    name=name,
                    items=tuple(
                        SceneItem(item.get("sourceName", ""), item.get("inputKind") or "")
                        for item in items.get("sceneItems", [])
                    ),
                )
            )
        return scenes

    async def change_scene(self, name: str) -> None:
        await self.request("SetCurrentProgramScene", {"sceneName": name})

    async def read_overlay_text(self, source_name: str) -> str:
        data = await self.request("GetInputSettings", {"inputName": source_name})
        return str((data.get("inputSettings") or {}).get("text", ""))

    async def send_hotkey(self, key_id: str, modifiers: KeyModifier) -> None:
        await self.request(
            "TriggerHotkeyByKeySequence",
            {"keyId": key_id, "keyModifiers": protocol.key_modifiers(modifiers)},
        )

    async def set_recording(self, active: bool) -> None:
        await self.request("StartRecord" if active else "StopRecord")

    async def set_streaming(self, active: bool) -> None:
        await self.request("StartStream" if active else "StopStream")

    def get_stats(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "connected": self.is_connected,
            "requests_sent": self.requests_sent,
            "events_received": self.events_received,
            "pending": len(self._pending),
        }
