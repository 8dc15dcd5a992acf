"""
Connection Watchdog: keeps the OBS link alive.

State machine:

    DISCONNECTED --(connect succeeds)--> CONNECTED --(disconnect event)--> DISCONNECTED

While disconnected (including at startup) a periodic timer attempts one
reconnect per tick. Connecting disarms the timer; losing the link arms
it again. Failed attempts are logged and retried on the next tick, they
never propagate.

The timer runs as its own task, independent of directive batches: a long
OBSDelay in a slide's notes does not hold up reconnection.
"""

from __future__ import annotations

import asyncio
from contextlib import ExitStack
from typing import Optional

import structlog

from slidesync.core.exceptions import ObsError
from slidesync.core.state import ConnectionStatus
from slidesync.sync.context import SyncContext
from slidesync.sync.events import Connected, Disconnected

logger = structlog.get_logger()


class ConnectionWatchdog:
    """Periodic reconnect timer driven by connection events."""

    def __init__(self, context: SyncContext):
        self.context = context
        self.config = context.settings.watchdog
        self.endpoint = context.settings.obs.endpoint
        self._password = context.settings.obs.password

        self.status = ConnectionStatus.DISCONNECTED
        self._timer: Optional[asyncio.Task] = None
        self._ticking = False
        self._subscriptions = ExitStack()
        self._running = False

        # Stats
        self.attempts = 0
        self.failures = 0

    @property
    def armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def start(self) -> None:
        """Subscribe to connection events, try once, then arm the timer."""
        if self._running:
            return
        self._running = True

        bus = self.context.bus
        self._subscriptions.enter_context(bus.subscribe(Connected, self._on_connected))
        self._subscriptions.enter_context(bus.subscribe(Disconnected, self._on_disconnected))

        logger.info(
            "Starting connection watchdog",
            endpoint=self.endpoint,
            interval_s=self.config.reconnect_interval_s,
        )

        if self.config.connect_on_start:
            await self.attempt_reconnect()

        if not self.context.scenes.is_connected:
            self._arm()

    async def stop(self) -> None:
        """Unsubscribe and cancel the timer."""
        self._running = False
        self._subscriptions.close()

        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            await asyncio.gather(timer, return_exceptions=True)

        logger.info(
            "Connection watchdog stopped",
            attempts=self.attempts,
            failures=self.failures,
        )

    async def tick(self) -> None:
        """One timer tick: reconnect if still disconnected, otherwise nothing."""
        if self.status is ConnectionStatus.CONNECTED or self.context.scenes.is_connected:
            return
        await self.attempt_reconnect()

    async def attempt_reconnect(self) -> bool:
        """Try to connect once. Returns True on success; never raises for transport errors."""
        self.attempts += 1
        try:
            await self.context.scenes.connect(self.endpoint, self._password)
        except (ObsError, OSError, asyncio.TimeoutError) as e:
            self.failures += 1
            logger.debug(
                "Reconnect attempt failed",
                endpoint=self.endpoint,
                attempt=self.attempts,
                error=str(e),
            )
            return False
        logger.debug("Reconnect attempt succeeded", endpoint=self.endpoint)
        return True

    def _arm(self) -> None:
        if self.armed or not self._running:
            return
        self._timer = asyncio.get_running_loop().create_task(
            self._tick_loop(), name="watchdog-timer"
        )
        logger.debug("Watchdog armed")

    def _disarm(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None:
            return
        # A tick in progress finishes on its own; the loop sees it is no longer current.
        if not timer.done() and not self._ticking:
            timer.cancel()
        logger.debug("Watchdog disarmed")

    async def _tick_loop(self) -> None:
        me = asyncio.current_task()
        interval = self.config.reconnect_interval_s
        while self._timer is me:
            await asyncio.sleep(interval)
            if self._timer is not me:
                break
            self._ticking = True
            try:
                await self.tick()
            except Exception as e:
                logger.error("Watchdog tick failed", error=str(e), exc_info=True)
            finally:
                self._ticking = False

    def _on_connected(self, event: Connected) -> None:
        self.status = ConnectionStatus.CONNECTED
        self._disarm()

    def _on_disconnected(self, event: Disconnected) -> None:
        self.status = ConnectionStatus.DISCONNECTED
        self._arm()

    def get_stats(self) -> dict:
        """Get watchdog statistics."""
        return {
            "status": self.status.value,
            "armed": self.armed,
            "attempts": self.attempts,
            "failures": self.failures,
        }
