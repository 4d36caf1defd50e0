"""The engine: one owned instance of every core service."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

from vipinator.config import Settings
from vipinator.controller import ConnectionController
from vipinator.coordinator import RefreshCoordinator, Trigger
from vipinator.gateway import GatewayProtocol, NetworkSetupGateway
from vipinator.hotkey import HotkeyToggleService
from vipinator.last_used import LastUsedStore, create_store
from vipinator.models import ACTIVE_STATUSES, Snapshot, Status
from vipinator.network import NetworkChangeMonitor
from vipinator.registry import ConnectionRegistry

log = logging.getLogger(__name__)


class VPNEngine:
    """Discovery, status tracking and control of OS VPN services.

    UI code holds one engine, reads ``snapshot()`` (or subscribes) and
    calls the async operations. All coroutines must run on the same
    event loop.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[GatewayProtocol] = None,
        store: Optional[LastUsedStore] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the engine.

        Args:
            settings: Engine settings (defaults if None)
            gateway: OS gateway (networksetup if None)
            store: Last used store (from settings.store_backend if None)
            sleep: Settle wait implementation
        """
        self.settings = settings or Settings()
        self.gateway = gateway or NetworkSetupGateway(
            self.settings.networksetup_path, self.settings.scutil_path
        )
        self.store = store or create_store(self.settings.store_backend, self.settings.state_file)

        active = ACTIVE_STATUSES
        if self.settings.count_disconnecting_as_active:
            active = active | {Status.DISCONNECTING}
        self.registry = ConnectionRegistry(active_statuses=active)

        self.coordinator = RefreshCoordinator(
            self.gateway, self.registry, source=self.settings.discovery_source
        )
        self.controller = ConnectionController(
            self.gateway,
            self.registry,
            self.coordinator,
            self.store,
            settle_seconds=self.settings.settle_seconds,
            sleep=sleep,
        )
        self.hotkey = HotkeyToggleService(
            self.registry,
            self.coordinator,
            self.controller,
            self.store,
            binding=self.settings.hotkey,
        )
        self.monitor = NetworkChangeMonitor(
            self.coordinator,
            debounce_seconds=self.settings.debounce_seconds,
            poll_seconds=self.settings.poll_seconds,
        )
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> Snapshot:
        """Start services and run the initial discovery."""
        if not self._started:
            self.hotkey.start()
            self.monitor.start()
            self._started = True
            log.info("Engine started")
        return await self.coordinator.refresh_discovery()

    def stop(self) -> None:
        if not self._started:
            return
        self.monitor.stop()
        self.hotkey.stop()
        self._started = False
        log.info("Engine stopped")

    # Snapshots

    def snapshot(self) -> Snapshot:
        return self.registry.snapshot()

    def subscribe(self, listener: Callable[[Snapshot], None]) -> Callable[[], None]:
        return self.registry.subscribe(listener)

    @property
    def any_active(self) -> bool:
        return self.registry.any_active

    # Triggers

    async def open_menu(self) -> Snapshot:
        return await self.coordinator.request(Trigger.UI_OPEN)

    async def reload(self) -> Snapshot:
        return await self.coordinator.request(Trigger.RELOAD)

    async def refresh_statuses(self) -> Snapshot:
        return await self.coordinator.refresh_statuses()

    def network_changed(self) -> None:
        self.monitor.notify()

    async def hotkey_pressed(self) -> Optional[Tuple[str, bool]]:
        return await self.hotkey.handle_hotkey()

    # Actions

    async def connect(self, name: str) -> bool:
        return await self.controller.connect(name)

    async def disconnect(self, name: str) -> bool:
        return await self.controller.disconnect(name)

    async def toggle(self, name: str) -> bool:
        return await self.controller.toggle(name)

    def last_used(self) -> Optional[str]:
        return self.store.load()
