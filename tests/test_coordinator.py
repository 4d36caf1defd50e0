"""Tests for refresh coordination."""

import asyncio

import pytest

from vipinator.coordinator import RefreshCoordinator, Trigger
from vipinator.errors import GatewayLaunchError
from vipinator.models import Status
from vipinator.registry import ConnectionRegistry


class TestDiscovery:
    """Tests for discovery refreshes."""

    def test_discovers_and_resolves(self, gateway, run):
        gateway.statuses["HomeVPN"] = "Connected"
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry)

        snap = run(coordinator.refresh_discovery())

        assert snap.names() == ["CorpVPN", "HomeVPN"]
        assert snap.get("HomeVPN").status is Status.CONNECTED
        assert snap.any_active
        assert registry.snapshot() is snap

    def test_concurrent_triggers_coalesce(self, gateway, run):
        """Test UI open + network change in the same tick list services once."""
        gateway.list_delay = 0.05
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry)
        published = []
        registry.subscribe(published.append)

        async def burst():
            return await asyncio.gather(
                coordinator.request(Trigger.UI_OPEN),
                coordinator.request(Trigger.RELOAD),
                coordinator.refresh_discovery(),
            )

        results = run(burst())

        assert gateway.list_calls == 1
        assert coordinator.discovery_count == 1
        assert results[0] is results[1] is results[2]
        # One atomic publish for the whole cycle
        assert len(published) == 1
        assert published[0].names() == ["CorpVPN", "HomeVPN"]

    def test_sequential_discoveries_both_run(self, gateway, run):
        coordinator = RefreshCoordinator(gateway, ConnectionRegistry())

        async def twice():
            await coordinator.refresh_discovery()
            await coordinator.refresh_discovery()

        run(twice())
        assert gateway.list_calls == 2

    def test_status_only_waits_for_discovery(self, gateway, run):
        """Test a network-change refresh during discovery sees its result."""
        gateway.list_delay = 0.05
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry)

        async def ordered():
            discovery = asyncio.ensure_future(coordinator.request(Trigger.UI_OPEN))
            await asyncio.sleep(0)
            status = await coordinator.request(Trigger.NETWORK_CHANGE)
            await discovery
            return status

        status_snapshot = run(ordered())
        assert status_snapshot.names() == ["CorpVPN", "HomeVPN"]
        assert gateway.list_calls == 1

    def test_listing_failure_gives_empty_set(self, gateway, run):
        gateway.fail_list = GatewayLaunchError("cannot run networksetup")
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry)

        snap = run(coordinator.refresh_discovery())

        assert len(snap) == 0
        assert registry.is_empty()

    def test_status_failure_is_invalid(self, gateway, run):
        gateway.fail_status.add("CorpVPN")
        coordinator = RefreshCoordinator(gateway, ConnectionRegistry())

        snap = run(coordinator.refresh_discovery())

        assert snap.get("CorpVPN").status is Status.INVALID
        assert snap.get("HomeVPN").status is Status.DISCONNECTED

    def test_status_reads_run_concurrently(self, gateway, run):
        gateway.status_delay = 0.2
        gateway.services += [(f"VPN{i}", "VPN", "") for i in range(5)]
        coordinator = RefreshCoordinator(gateway, ConnectionRegistry())

        async def timed():
            loop = asyncio.get_running_loop()
            start = loop.time()
            await coordinator.refresh_discovery()
            return loop.time() - start

        # Seven sequential reads would take 1.4s
        assert run(timed()) < 1.0


class TestStatusRefresh:
    """Tests for status-only refreshes."""

    def test_updates_in_place(self, gateway, run):
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry)

        async def scenario():
            await coordinator.refresh_discovery()
            gateway.statuses["CorpVPN"] = "Connected"
            gateway.services.append(("NewVPN", "VPN", ""))
            return await coordinator.request(Trigger.HOTKEY)

        snap = run(scenario())

        assert snap.names() == ["CorpVPN", "HomeVPN"]
        assert snap.get("CorpVPN").status is Status.CONNECTED
        assert gateway.list_calls == 1

    def test_empty_registry_no_calls(self, gateway, run):
        coordinator = RefreshCoordinator(gateway, ConnectionRegistry())
        snap = run(coordinator.refresh_statuses())
        assert len(snap) == 0
        assert gateway.status_calls == []

    def test_trigger_policy(self):
        assert Trigger.UI_OPEN.wants_discovery
        assert Trigger.RELOAD.wants_discovery
        for trigger in (Trigger.HOTKEY, Trigger.NETWORK_CHANGE, Trigger.POST_ACTION, Trigger.POLL):
            assert not trigger.wants_discovery

    def test_status_refresh_cannot_overwrite_newer_discovery(self, gateway, run):
        """Test reads taken before a discovery are published before it."""
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry)

        async def scenario():
            await coordinator.refresh_discovery()
            gateway.status_delay = 0.05
            stale = asyncio.ensure_future(coordinator.refresh_statuses())
            await asyncio.sleep(0.01)
            gateway.statuses["CorpVPN"] = "Connected"
            gateway.status_delay = 0.0
            discovered = await coordinator.refresh_discovery()
            await stale
            return discovered

        discovered = run(scenario())
        assert discovered.get("CorpVPN").status is Status.CONNECTED
        assert registry.snapshot() is discovered


class TestScutilDiscovery:
    """Tests for discovery from scutil --nc list."""

    def test_statuses_come_from_listing(self, gateway, run):
        gateway.statuses["HomeVPN"] = "Connected"
        registry = ConnectionRegistry()
        coordinator = RefreshCoordinator(gateway, registry, source="scutil")

        snap = run(coordinator.refresh_discovery())

        assert snap.names() == ["CorpVPN", "HomeVPN"]
        assert snap.get("HomeVPN").status is Status.CONNECTED
        assert snap.get("CorpVPN").hardware_port == "VPN"
        assert gateway.nc_list_calls == 1
        assert gateway.list_calls == 0
        assert gateway.status_calls == []

    def test_listing_failure_gives_empty_set(self, gateway, run):
        gateway.fail_list = GatewayLaunchError("cannot run scutil")
        coordinator = RefreshCoordinator(gateway, ConnectionRegistry(), source="scutil")
        assert len(run(coordinator.refresh_discovery())) == 0

    def test_status_refresh_reads_per_service(self, gateway, run):
        coordinator = RefreshCoordinator(gateway, ConnectionRegistry(), source="scutil")

        async def scenario():
            await coordinator.refresh_discovery()
            gateway.statuses["CorpVPN"] = "Connected"
            return await coordinator.request(Trigger.POLL)

        snap = run(scenario())
        assert snap.get("CorpVPN").status is Status.CONNECTED
        assert sorted(gateway.status_calls) == ["CorpVPN", "HomeVPN"]

    def test_engine_uses_configured_source(self, gateway, store, run):
        from vipinator.config import Settings
        from vipinator.engine import VPNEngine

        engine = VPNEngine(Settings(discovery_source="scutil"), gateway=gateway, store=store)
        snap = run(engine.start())

        assert snap.names() == ["CorpVPN", "HomeVPN"]
        assert gateway.nc_list_calls == 1
        assert gateway.list_calls == 0

    def test_unknown_source(self, gateway):
        with pytest.raises(ValueError):
            RefreshCoordinator(gateway, ConnectionRegistry(), source="ifconfig")
