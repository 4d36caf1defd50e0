"""Constants and platform paths for Vipinator."""

import sys
from pathlib import Path

# Application info
APP_NAME = "Vipinator"
APP_ID = "com.github.vipinator"
VERSION = "1.2.0"

# Platform-specific paths
if sys.platform == "darwin":
    STATE_DIR = Path.home() / "Library" / "Application Support" / "Vipinator"
    LOGS_DIR = Path.home() / "Library" / "Logs" / "Vipinator"
else:
    # Linux paths (XDG)
    STATE_DIR = Path.home() / ".cache" / "vipinator"
    LOGS_DIR = Path.home() / ".local" / "share" / "vipinator" / "logs"

STATE_FILE = STATE_DIR / "state.json"
SETTINGS_FILE = STATE_DIR / "settings.json"
LOG_FILE = LOGS_DIR / "vipinator.log"

# Keyring
KEYRING_SERVICE = "vipinator"
LAST_USED_KEY = "last_used_vpn"

# OS commands
NETWORKSETUP_PATH = "/usr/sbin/networksetup"
SCUTIL_PATH = "/usr/sbin/scutil"

# Services that show up in the service order but are never VPNs
EXCLUDED_SERVICES = frozenset({"Wi-Fi", "Bluetooth PAN", "Thunderbolt Bridge"})

# Timing defaults (seconds)
DEFAULT_SETTLE_SECONDS = 2.0
DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_POLL_SECONDS = 0.0

# networksetup lists every service and statuses are read one by one;
# scutil lists VPN services with their status inline
DISCOVERY_SOURCES = ("networksetup", "scutil")
