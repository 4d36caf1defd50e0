"""Connection data model."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class Status(Enum):
    """Connection status as reported by the OS (plus optimistic markers)."""

    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"
    INVALID = "invalid"

    @property
    def is_transient(self) -> bool:
        return self in (Status.CONNECTING, Status.DISCONNECTING)


ACTIVE_STATUSES = frozenset({Status.CONNECTED, Status.CONNECTING})


@dataclass(frozen=True)
class Connection:
    """A VPN network service known to the OS."""

    name: str
    hardware_port: str
    device: str = ""
    status: Status = Status.DISCONNECTED

    def with_status(self, status: Status) -> "Connection":
        return replace(self, status=status)


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of every known connection at one instant."""

    connections: tuple = ()
    version: int = 0
    active_statuses: frozenset = field(default=ACTIVE_STATUSES, compare=False)

    @property
    def any_active(self) -> bool:
        return any(c.status in self.active_statuses for c in self.connections)

    def get(self, name: str) -> Optional[Connection]:
        for conn in self.connections:
            if conn.name == name:
                return conn
        return None

    def names(self) -> list:
        return [c.name for c in self.connections]

    def __len__(self) -> int:
        return len(self.connections)

    def __iter__(self):
        return iter(self.connections)
