"""In-memory source of truth for known connections.

Writers replace the whole snapshot under a lock (copy-on-write); readers
get the current immutable Snapshot and never see a half-applied update.
"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from vipinator.models import ACTIVE_STATUSES, Connection, Snapshot, Status

log = logging.getLogger(__name__)

SnapshotListener = Callable[[Snapshot], None]


class ConnectionRegistry:
    """Holds the current Snapshot and publishes replacements."""

    def __init__(self, active_statuses: frozenset = ACTIVE_STATUSES):
        self._lock = threading.Lock()
        self._active_statuses = active_statuses
        self._snapshot = Snapshot(active_statuses=active_statuses)
        self._listeners: List[SnapshotListener] = []

    def snapshot(self) -> Snapshot:
        return self._snapshot

    def is_empty(self) -> bool:
        return len(self._snapshot) == 0

    def get(self, name: str) -> Optional[Connection]:
        return self._snapshot.get(name)

    def status_of(self, name: str) -> Optional[Status]:
        conn = self._snapshot.get(name)
        return conn.status if conn else None

    @property
    def any_active(self) -> bool:
        return self._snapshot.any_active

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback invoked with every published snapshot.

        Returns:
            A function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, connections: Iterable[Connection]) -> Snapshot:
        # Caller holds the lock
        snapshot = Snapshot(
            connections=tuple(connections),
            version=self._snapshot.version + 1,
            active_statuses=self._active_statuses,
        )
        self._snapshot = snapshot
        return snapshot

    def _notify(self, snapshot: Snapshot) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                log.exception("Snapshot listener failed")

    def replace(self, connections: Iterable[Connection]) -> Snapshot:
        """Drop the current set and publish a new one (discovery)."""
        with self._lock:
            snapshot = self._publish(connections)
        log.debug(f"Registry replaced: {snapshot.names()} (v{snapshot.version})")
        self._notify(snapshot)
        return snapshot

    def apply_statuses(self, statuses: Dict[str, Status]) -> Snapshot:
        """Update statuses by name, keeping order and identity.

        Names that are no longer known are ignored; known names missing
        from ``statuses`` keep their current status.
        """
        with self._lock:
            current = self._snapshot.connections
            updated = [
                c.with_status(statuses[c.name]) if c.name in statuses else c
                for c in current
            ]
            snapshot = self._publish(updated)
        self._notify(snapshot)
        return snapshot

    def set_status(self, name: str, status: Status) -> bool:
        """Set one connection's status.

        Returns:
            True if the connection is known and was updated
        """
        if self._snapshot.get(name) is None:
            return False
        self.apply_statuses({name: status})
        return True

    def clear(self) -> Snapshot:
        return self.replace(())
