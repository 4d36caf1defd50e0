"""Persistence of the last successfully connected service name."""

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from vipinator.constants import KEYRING_SERVICE, LAST_USED_KEY, STATE_FILE

log = logging.getLogger(__name__)


class LastUsedStore(Protocol):
    """One persistent scalar: the last connected service name."""

    def save(self, name: str) -> None:
        ...

    def load(self) -> Optional[str]:
        ...

    def clear(self) -> None:
        ...


class FileLastUsedStore:
    """Stores the name in the JSON state file.

    Other keys in the state file are preserved.
    """

    def __init__(self, path: Path = STATE_FILE, key: str = LAST_USED_KEY):
        self._path = Path(path)
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def _read_state(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            state = json.loads(self._path.read_text())
        except (OSError, ValueError) as e:
            log.warning(f"Unreadable state file {self._path}: {e}")
            return {}
        return state if isinstance(state, dict) else {}

    def _write_state(self, state: dict) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(state, indent=2))
        except OSError as e:
            log.error(f"Cannot write state file {self._path}: {e}")

    def save(self, name: str) -> None:
        state = self._read_state()
        state[self._key] = name
        self._write_state(state)

    def load(self) -> Optional[str]:
        value = self._read_state().get(self._key)
        return value if isinstance(value, str) and value else None

    def clear(self) -> None:
        state = self._read_state()
        if self._key in state:
            del state[self._key]
            self._write_state(state)


class KeyringLastUsedStore:
    """Stores the name in the system keyring."""

    def __init__(self, service: str = KEYRING_SERVICE, key: str = LAST_USED_KEY):
        self._service = service
        self._key = key

    def save(self, name: str) -> None:
        try:
            keyring.set_password(self._service, self._key, name)
        except KeyringError as e:
            log.error(f"Cannot save last used VPN to keyring: {e}")

    def load(self) -> Optional[str]:
        try:
            return keyring.get_password(self._service, self._key) or None
        except KeyringError as e:
            log.warning(f"Cannot read last used VPN from keyring: {e}")
            return None

    def clear(self) -> None:
        try:
            keyring.delete_password(self._service, self._key)
        except PasswordDeleteError:
            pass  # Nothing stored
        except KeyringError as e:
            log.error(f"Cannot clear last used VPN from keyring: {e}")


class MemoryLastUsedStore:
    """Non-persistent store, for tests and ``--no-persist`` runs."""

    def __init__(self, name: Optional[str] = None):
        self._name = name

    def save(self, name: str) -> None:
        self._name = name

    def load(self) -> Optional[str]:
        return self._name

    def clear(self) -> None:
        self._name = None


def create_store(backend: str, state_file: Path = STATE_FILE) -> LastUsedStore:
    """Create the store for a configured backend name.

    Args:
        backend: "file", "keyring" or "memory"
        state_file: State file used by the file backend

    Returns:
        A LastUsedStore instance
    """
    if backend == "keyring":
        return KeyringLastUsedStore()
    if backend == "memory":
        return MemoryLastUsedStore()
    if backend != "file":
        log.warning(f"Unknown store backend {backend!r}, using file")
    return FileLastUsedStore(state_file)
