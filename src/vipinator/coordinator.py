"""Serializes and coalesces refreshes requested from many triggers."""

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional

from vipinator.constants import DISCOVERY_SOURCES
from vipinator.errors import GatewayError
from vipinator.gateway import GatewayProtocol
from vipinator.models import Connection, Snapshot, Status
from vipinator.parser import parse_nc_list, parse_service_order, resolve_status
from vipinator.registry import ConnectionRegistry

log = logging.getLogger(__name__)


class Trigger(Enum):
    """Why a refresh was requested."""

    UI_OPEN = "ui_open"
    RELOAD = "reload"
    HOTKEY = "hotkey"
    NETWORK_CHANGE = "network_change"
    POST_ACTION = "post_action"
    POLL = "poll"

    @property
    def wants_discovery(self) -> bool:
        return self in (Trigger.UI_OPEN, Trigger.RELOAD)


class RefreshCoordinator:
    """Runs discovery and status-only refreshes against the registry.

    At most one discovery runs at a time; overlapping discovery requests
    await the in-flight one. Discovery and status-only refreshes share one
    lock, so a slow status refresh never publishes over a newer listing.
    """

    def __init__(
        self,
        gateway: GatewayProtocol,
        registry: ConnectionRegistry,
        source: str = "networksetup",
    ):
        """Initialize the coordinator.

        Args:
            gateway: OS command gateway
            registry: Registry to publish into
            source: Discovery listing, one of DISCOVERY_SOURCES
        """
        if source not in DISCOVERY_SOURCES:
            raise ValueError(f"Unknown discovery source: {source}")
        self._gateway = gateway
        self._registry = registry
        self._source = source
        self._discovery: Optional[asyncio.Task] = None
        self._refresh_lock: Optional[asyncio.Lock] = None
        self.discovery_count = 0
        self.status_count = 0

    @property
    def discovery_in_flight(self) -> bool:
        return self._discovery is not None and not self._discovery.done()

    def _lock(self) -> asyncio.Lock:
        # Created lazily so it binds to the running loop
        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        return self._refresh_lock

    async def request(self, trigger: Trigger) -> Snapshot:
        """Refresh according to the trigger's policy."""
        log.debug(f"Refresh requested by {trigger.value}")
        if trigger.wants_discovery:
            return await self.refresh_discovery()
        return await self.refresh_statuses()

    async def refresh_discovery(self) -> Snapshot:
        """Re-list services and re-resolve all statuses.

        Concurrent callers share one in-flight run and all get its result.
        """
        if not self.discovery_in_flight:
            self._discovery = asyncio.ensure_future(self._run_discovery())
        # Shield so one cancelled caller does not cancel the others
        return await asyncio.shield(self._discovery)

    async def _run_discovery(self) -> Snapshot:
        async with self._lock():
            self.discovery_count += 1
            try:
                if self._source == "scutil":
                    connections = parse_nc_list(await self._gateway.list_nc_services())
                else:
                    connections = await self._discover_networksetup()
            except GatewayError as e:
                log.warning(f"Service discovery failed: {e}")
                return self._registry.replace(())

            snapshot = self._registry.replace(connections)
            log.info(f"Discovered {len(snapshot)} VPN service(s) via {self._source}")
            return snapshot

    async def _discover_networksetup(self) -> List[Connection]:
        candidates = parse_service_order(await self._gateway.list_services())
        statuses = await self._fetch_statuses([c.name for c in candidates])
        return [c.with_status(statuses[c.name]) for c in candidates]

    async def refresh_statuses(self) -> Snapshot:
        """Re-resolve the status of every known connection."""
        if self.discovery_in_flight:
            await asyncio.shield(self._discovery)

        async with self._lock():
            names = self._registry.snapshot().names()
            if not names:
                return self._registry.snapshot()
            self.status_count += 1
            statuses = await self._fetch_statuses(names)
            return self._registry.apply_statuses(statuses)

    async def _fetch_statuses(self, names: List[str]) -> Dict[str, Status]:
        results = await asyncio.gather(*(self.read_status(name) for name in names))
        return dict(zip(names, results))

    async def fetch_status(self, name: str) -> Status:
        """Read one service's status, letting GatewayError propagate."""
        return resolve_status(await self._gateway.show_status(name))

    async def read_status(self, name: str) -> Status:
        """Read one service's status; gateway failures become INVALID."""
        try:
            return await self.fetch_status(name)
        except GatewayError as e:
            log.warning(f"Status check failed for {name}: {e}")
            return Status.INVALID
