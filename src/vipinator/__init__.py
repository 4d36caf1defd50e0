"""Vipinator - VPN service discovery and control engine.

Core library used by the tray app and the command line.
"""

from .constants import VERSION as __version__
from .config import Settings, load_settings
from .controller import ConnectionController
from .coordinator import RefreshCoordinator, Trigger
from .engine import VPNEngine
from .errors import (
    GatewayError,
    GatewayExecutionError,
    GatewayLaunchError,
    ParseAmbiguity,
    VipinatorError,
)
from .gateway import CommandResult, GatewayProtocol, NetworkSetupGateway
from .hotkey import HotkeyBinding, HotkeyToggleService
from .last_used import (
    FileLastUsedStore,
    KeyringLastUsedStore,
    LastUsedStore,
    MemoryLastUsedStore,
    create_store,
)
from .models import Connection, Snapshot, Status
from .network import NetworkChangeMonitor
from .parser import parse_nc_list, parse_service_order, resolve_status
from .registry import ConnectionRegistry

__all__ = [
    # Model
    "Connection",
    "Snapshot",
    "Status",
    # Parsing
    "parse_service_order",
    "parse_nc_list",
    "resolve_status",
    # Gateway
    "CommandResult",
    "GatewayProtocol",
    "NetworkSetupGateway",
    # Errors
    "VipinatorError",
    "GatewayError",
    "GatewayLaunchError",
    "GatewayExecutionError",
    "ParseAmbiguity",
    # State
    "ConnectionRegistry",
    "RefreshCoordinator",
    "Trigger",
    "ConnectionController",
    # Persistence
    "LastUsedStore",
    "FileLastUsedStore",
    "KeyringLastUsedStore",
    "MemoryLastUsedStore",
    "create_store",
    # Services
    "HotkeyBinding",
    "HotkeyToggleService",
    "NetworkChangeMonitor",
    "VPNEngine",
    # Config
    "Settings",
    "load_settings",
]
