"""Tests for network change debouncing and polling."""

import asyncio

from vipinator.coordinator import RefreshCoordinator
from vipinator.models import Status
from vipinator.network import NetworkChangeMonitor
from vipinator.registry import ConnectionRegistry


def _setup(gateway, debounce=0.02, poll=0.0):
    registry = ConnectionRegistry()
    coordinator = RefreshCoordinator(gateway, registry)
    monitor = NetworkChangeMonitor(coordinator, debounce_seconds=debounce, poll_seconds=poll)
    return registry, coordinator, monitor


class TestNetworkChangeMonitor:
    """Tests for NetworkChangeMonitor."""

    def test_burst_collapses_to_one_refresh(self, gateway, run):
        registry, coordinator, monitor = _setup(gateway)

        async def scenario():
            await coordinator.refresh_discovery()
            monitor.start()
            gateway.statuses["CorpVPN"] = "Connected"
            for _ in range(5):
                monitor.notify()
            await asyncio.sleep(0.05)
            await monitor.wait_idle()
            monitor.stop()

        run(scenario())
        assert monitor.refresh_count == 1
        assert coordinator.status_count == 1
        assert registry.snapshot().get("CorpVPN").status is Status.CONNECTED

    def test_notify_before_start_ignored(self, gateway, run):
        registry, coordinator, monitor = _setup(gateway)

        async def scenario():
            monitor.notify()
            await asyncio.sleep(0.05)

        run(scenario())
        assert monitor.refresh_count == 0

    def test_stop_cancels_pending(self, gateway, run):
        registry, coordinator, monitor = _setup(gateway, debounce=0.05)

        async def scenario():
            monitor.start()
            monitor.notify()
            monitor.stop()
            await asyncio.sleep(0.1)

        run(scenario())
        assert monitor.refresh_count == 0

    def test_notify_threadsafe(self, gateway, run):
        registry, coordinator, monitor = _setup(gateway)

        async def scenario():
            await coordinator.refresh_discovery()
            monitor.start()
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, monitor.notify_threadsafe)
            await asyncio.sleep(0.05)
            await monitor.wait_idle()
            monitor.stop()

        run(scenario())
        assert monitor.refresh_count == 1

    def test_polling(self, gateway, run):
        registry, coordinator, monitor = _setup(gateway, poll=0.02)

        async def scenario():
            await coordinator.refresh_discovery()
            monitor.start()
            await asyncio.sleep(0.11)
            monitor.stop()

        run(scenario())
        assert monitor.refresh_count >= 2
        assert gateway.list_calls == 1
