"""Shared fixtures: an in-memory stand-in for networksetup."""

import asyncio

import pytest

from vipinator.config import Settings
from vipinator.engine import VPNEngine
from vipinator.errors import GatewayExecutionError, GatewayLaunchError
from vipinator.last_used import MemoryLastUsedStore


class FakeGateway:
    """Gateway that keeps service state in a dict and counts calls."""

    def __init__(self, services=None, statuses=None):
        # (name, hardware port, device)
        self.services = list(services or [])
        self.statuses = dict(statuses or {})
        self.after_connect = "Connected"
        self.after_disconnect = "Disconnected"
        self.list_delay = 0.0
        self.status_delay = 0.0
        self.fail_list = None
        self.fail_status = set()
        self.fail_connect = False
        self.list_calls = 0
        self.nc_list_calls = 0
        self.status_calls = []
        self.connect_calls = []
        self.disconnect_calls = []

    def listing(self) -> str:
        lines = ["An asterisk (*) denotes that a network service is disabled."]
        for index, (name, port, device) in enumerate(self.services, start=1):
            lines.append(f"({index}) {name}")
            lines.append(f"(Hardware Port: {port}, Device: {device})")
        return "\n".join(lines) + "\n"

    def nc_listing(self) -> str:
        lines = ["Available network connection services in the current set (*=enabled):"]
        for index, (name, port, _device) in enumerate(self.services):
            status = self.statuses.get(name, "Disconnected")
            lines.append(f'* ({status}) 00{index}-ID PPP --> {port} "{name}" [PPP:{port}]')
        return "\n".join(lines) + "\n"

    async def list_services(self) -> str:
        self.list_calls += 1
        if self.list_delay:
            await asyncio.sleep(self.list_delay)
        if self.fail_list is not None:
            raise self.fail_list
        return self.listing()

    async def list_nc_services(self) -> str:
        self.nc_list_calls += 1
        if self.fail_list is not None:
            raise self.fail_list
        return self.nc_listing()

    async def show_status(self, name: str) -> str:
        self.status_calls.append(name)
        # Answer with the state at call time, like a real command would
        status = self.statuses.get(name, "Disconnected")
        if self.status_delay:
            await asyncio.sleep(self.status_delay)
        if name in self.fail_status:
            raise GatewayExecutionError(f"no service {name}", ("networksetup",), 1)
        return status

    async def connect(self, name: str) -> None:
        self.connect_calls.append(name)
        if self.fail_connect:
            raise GatewayLaunchError("networksetup missing", ("networksetup",))
        self.statuses[name] = self.after_connect

    async def disconnect(self, name: str) -> None:
        self.disconnect_calls.append(name)
        self.statuses[name] = self.after_disconnect


class RecordingSleep:
    """Replacement for asyncio.sleep that records settle waits."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def gateway():
    return FakeGateway(
        services=[
            ("CorpVPN", "VPN", "ppp0"),
            ("Wi-Fi", "Wi-Fi", "en0"),
            ("HomeVPN", "L2TP", ""),
        ],
        statuses={"CorpVPN": "Disconnected", "HomeVPN": "Disconnected"},
    )


@pytest.fixture
def store():
    return MemoryLastUsedStore()


@pytest.fixture
def settle():
    return RecordingSleep()


@pytest.fixture
def engine(gateway, store, settle):
    settings = Settings(settle_seconds=2.0, debounce_seconds=0.01)
    return VPNEngine(settings, gateway=gateway, store=store, sleep=settle)


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
