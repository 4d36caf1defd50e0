"""Runtime settings.

Values come from the JSON settings file in the state directory and are
overridden by ``VIPINATOR_*`` environment variables. Anything that does
not parse falls back to its default.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from vipinator.constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_POLL_SECONDS,
    DEFAULT_SETTLE_SECONDS,
    DISCOVERY_SOURCES,
    NETWORKSETUP_PATH,
    SCUTIL_PATH,
    SETTINGS_FILE,
    STATE_FILE,
)
from vipinator.hotkey import DEFAULT_HOTKEY, HotkeyBinding

log = logging.getLogger(__name__)

STORE_BACKENDS = ("file", "keyring", "memory")
ENV_PREFIX = "VIPINATOR_"


@dataclass
class Settings:
    """Engine configuration."""

    settle_seconds: float = DEFAULT_SETTLE_SECONDS
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    poll_seconds: float = DEFAULT_POLL_SECONDS
    store_backend: str = "file"
    discovery_source: str = "networksetup"
    count_disconnecting_as_active: bool = False
    networksetup_path: str = NETWORKSETUP_PATH
    scutil_path: str = SCUTIL_PATH
    state_file: Path = STATE_FILE
    log_level: str = "INFO"
    hotkey: HotkeyBinding = field(default_factory=lambda: DEFAULT_HOTKEY)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state_file"] = str(self.state_file)
        data["hotkey"] = str(self.hotkey)
        return data

    def save(self, path: Path = SETTINGS_FILE) -> bool:
        """Write settings to disk.

        Returns:
            True if saved successfully
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict(), indent=2))
            return True
        except OSError as e:
            log.error(f"Cannot save settings to {path}: {e}")
            return False


def _as_float(value, default: float) -> float:
    try:
        result = float(str(value).strip() or default)
    except (TypeError, ValueError):
        return default
    return result if result >= 0 else default


def _as_bool(value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    return default


def _read_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        log.warning(f"Ignoring unreadable settings file {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(path: Optional[Path] = None, environ: Optional[dict] = None) -> Settings:
    """Load settings from file and environment.

    Args:
        path: Settings file (default: SETTINGS_FILE)
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings instance
    """
    raw = _read_file(path or SETTINGS_FILE)
    env = os.environ if environ is None else environ
    for key in Settings.__dataclass_fields__:
        env_value = env.get(ENV_PREFIX + key.upper())
        if env_value is not None:
            raw[key] = env_value

    settings = Settings()
    settings.settle_seconds = _as_float(raw.get("settle_seconds", ""), settings.settle_seconds)
    settings.debounce_seconds = _as_float(raw.get("debounce_seconds", ""), settings.debounce_seconds)
    settings.poll_seconds = _as_float(raw.get("poll_seconds", ""), settings.poll_seconds)
    settings.count_disconnecting_as_active = _as_bool(
        raw.get("count_disconnecting_as_active", ""), settings.count_disconnecting_as_active
    )

    backend = str(raw.get("store_backend", settings.store_backend)).strip().lower()
    if backend in STORE_BACKENDS:
        settings.store_backend = backend
    else:
        log.warning(f"Unknown store backend {backend!r}, using {settings.store_backend}")

    source = str(raw.get("discovery_source", settings.discovery_source)).strip().lower()
    if source in DISCOVERY_SOURCES:
        settings.discovery_source = source
    else:
        log.warning(f"Unknown discovery source {source!r}, using {settings.discovery_source}")

    for key in ("networksetup_path", "scutil_path"):
        if raw.get(key):
            setattr(settings, key, str(raw[key]))
    if raw.get("state_file"):
        settings.state_file = Path(str(raw["state_file"])).expanduser()
    if raw.get("log_level"):
        settings.log_level = str(raw["log_level"]).strip().upper()

    if raw.get("hotkey"):
        try:
            settings.hotkey = HotkeyBinding.parse(str(raw["hotkey"]))
        except ValueError as e:
            log.warning(f"{e}, using {DEFAULT_HOTKEY}")

    return settings
