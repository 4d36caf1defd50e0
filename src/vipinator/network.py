"""Debounced network-change notifications and optional status polling."""

import asyncio
import logging
from typing import Optional

from vipinator.constants import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_POLL_SECONDS
from vipinator.coordinator import RefreshCoordinator, Trigger

log = logging.getLogger(__name__)


class NetworkChangeMonitor:
    """Collapses bursts of "network configuration changed" events.

    Each ``notify()`` (re)arms a timer; when it fires a single status-only
    refresh is requested. With ``poll_seconds`` > 0 statuses are also
    refreshed periodically.
    """

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        poll_seconds: float = DEFAULT_POLL_SECONDS,
    ):
        self._coordinator = coordinator
        self._debounce_seconds = debounce_seconds
        self._poll_seconds = poll_seconds
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._refresh: Optional[asyncio.Task] = None
        self._poller: Optional[asyncio.Task] = None
        self.refresh_count = 0

    @property
    def running(self) -> bool:
        return self._loop is not None

    def start(self) -> None:
        """Start listening. Must be called from the engine's event loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        if self._poll_seconds > 0:
            self._poller = self._loop.create_task(self._poll())
        log.debug("Network change monitor started")

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for task in (self._poller, self._refresh):
            if task is not None and not task.done():
                task.cancel()
        self._poller = None
        self._refresh = None
        self._loop = None

    def notify(self) -> None:
        """Record a network change. Call from the event loop thread."""
        if not self.running:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self._debounce_seconds, self._fire)

    def notify_threadsafe(self) -> None:
        """Record a network change from any thread."""
        loop = self._loop
        if loop is not None:
            loop.call_soon_threadsafe(self.notify)

    def _fire(self) -> None:
        self._timer = None
        self._refresh = self._loop.create_task(self._run_refresh(Trigger.NETWORK_CHANGE))

    async def _run_refresh(self, trigger: Trigger) -> None:
        self.refresh_count += 1
        try:
            await self._coordinator.request(trigger)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception(f"Refresh after {trigger.value} failed")

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._poll_seconds)
            await self._run_refresh(Trigger.POLL)

    async def wait_idle(self) -> None:
        """Wait until no debounced refresh is pending or running."""
        while self._timer is not None or (self._refresh is not None and not self._refresh.done()):
            if self._refresh is not None and not self._refresh.done():
                await asyncio.wait([self._refresh])
            else:
                await asyncio.sleep(self._debounce_seconds / 2 or 0.01)
