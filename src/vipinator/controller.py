"""Connect / disconnect with optimistic state and outcome verification."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from vipinator.constants import DEFAULT_SETTLE_SECONDS
from vipinator.coordinator import RefreshCoordinator, Trigger
from vipinator.errors import GatewayError
from vipinator.gateway import GatewayProtocol
from vipinator.last_used import LastUsedStore
from vipinator.models import Status
from vipinator.registry import ConnectionRegistry

log = logging.getLogger(__name__)


class ConnectionController:
    """Runs VPN actions one at a time per service.

    A connect or disconnect marks the service Connecting/Disconnecting,
    issues the OS command, waits ``settle_seconds`` and then writes the
    truthfully resolved status back, whatever the outcome. A second action
    on a service that already has one outstanding is rejected.
    """

    def __init__(
        self,
        gateway: GatewayProtocol,
        registry: ConnectionRegistry,
        coordinator: RefreshCoordinator,
        store: LastUsedStore,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._gateway = gateway
        self._registry = registry
        self._coordinator = coordinator
        self._store = store
        self._settle_seconds = settle_seconds
        self._sleep = sleep
        self._pending: Dict[str, asyncio.Task] = {}

    def is_busy(self, name: str) -> bool:
        task = self._pending.get(name)
        return task is not None and not task.done()

    async def connect(self, name: str) -> bool:
        """Connect a service.

        Args:
            name: Service name

        Returns:
            True if the service was not connected before and is now
        """
        return await self._start(name, self._connect)

    async def disconnect(self, name: str) -> bool:
        """Disconnect a service.

        Args:
            name: Service name

        Returns:
            True if the service was connected before and is not now
        """
        return await self._start(name, self._disconnect)

    async def toggle(self, name: str) -> bool:
        """Connect or disconnect depending on the current status.

        Connected/Connecting disconnects, Disconnected/Invalid connects.
        Disconnecting is left alone until it settles.
        """
        return await self._start(name, self._toggle)

    async def _start(self, name: str, action) -> bool:
        if self.is_busy(name):
            log.info(f"Action on {name} rejected: another action is outstanding")
            return False

        task = asyncio.ensure_future(action(name))
        self._pending[name] = task
        task.add_done_callback(lambda t, n=name: self._forget(n, t))
        # The OS operation completes even if the caller stops waiting
        return await asyncio.shield(task)

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._pending.get(name) is task:
            del self._pending[name]
        if not task.cancelled() and task.exception() is not None:
            log.error(f"Action on {name} failed", exc_info=task.exception())

    async def _current_status(self, name: str) -> Status:
        try:
            return await self._coordinator.fetch_status(name)
        except GatewayError as e:
            # Only a failed read falls back; unrecognized text stays Invalid
            known = self._registry.status_of(name)
            log.warning(f"Status check failed for {name}: {e}")
            if known is not None and not known.is_transient:
                return known
            return Status.INVALID

    async def _toggle(self, name: str) -> bool:
        previous = await self._current_status(name)
        if previous in (Status.CONNECTED, Status.CONNECTING):
            return await self._disconnect(name, previous)
        if previous is Status.DISCONNECTING:
            log.info(f"{name} is disconnecting, toggle ignored")
            self._registry.set_status(name, previous)
            return False
        return await self._connect(name, previous)

    async def _connect(self, name: str, previous: Optional[Status] = None) -> bool:
        if previous is None:
            previous = await self._current_status(name)
        if previous is Status.CONNECTED:
            log.info(f"{name} is already connected")
            self._registry.set_status(name, previous)
            return False

        resolved = await self._perform(name, Status.CONNECTING, self._gateway.connect)
        success = resolved is Status.CONNECTED
        if success:
            log.info(f"Connected to {name}")
            self._store.save(name)
        else:
            log.warning(f"Connect to {name} did not complete (status: {resolved.value})")
        await self._refresh_after_action()
        return success

    async def _disconnect(self, name: str, previous: Optional[Status] = None) -> bool:
        if previous is None:
            previous = await self._current_status(name)
        if previous is Status.DISCONNECTED:
            log.info(f"{name} is already disconnected")
            self._registry.set_status(name, previous)
            return False

        resolved = await self._perform(name, Status.DISCONNECTING, self._gateway.disconnect)
        success = previous is Status.CONNECTED and resolved is not Status.CONNECTED
        if success:
            log.info(f"Disconnected from {name}")
        else:
            log.warning(f"Disconnect from {name} did not complete (status: {resolved.value})")
        await self._refresh_after_action()
        return success

    async def _perform(self, name: str, marker: Status, command) -> Status:
        """Mark, issue the command, settle, and write the resolved status."""
        self._registry.set_status(name, marker)
        try:
            await command(name)
        except GatewayError as e:
            # Fall through to re-resolve: the OS may have acted anyway
            log.warning(f"{marker.value.capitalize()} {name} failed: {e}")
        else:
            await self._sleep(self._settle_seconds)

        resolved = await self._coordinator.read_status(name)
        self._registry.set_status(name, resolved)
        return resolved

    async def _refresh_after_action(self) -> None:
        # Other services may have changed as a side effect
        await self._coordinator.request(Trigger.POST_ACTION)
