"""PyQt6 adapter for tray code.

The engine runs on its own asyncio loop inside an EngineThread so the Qt
main thread never blocks on OS commands. Snapshots and action results
come back as Qt signals, which Qt queues onto the receiver's thread.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from vipinator.engine import VPNEngine
from vipinator.models import Snapshot

log = logging.getLogger(__name__)


class EngineThread(QThread):
    """Thread hosting the engine's event loop."""

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready = threading.Event()

    def run(self) -> None:
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self._ready.set()
        try:
            self.loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self.loop)
            for task in pending:
                task.cancel()
            if pending:
                self.loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            self.loop.close()

    def wait_ready(self, timeout: float = 5.0) -> bool:
        return self._ready.wait(timeout)

    def stop_loop(self) -> None:
        if self.loop is not None and self.loop.is_running():
            self.loop.call_soon_threadsafe(self.loop.stop)


class EngineBridge(QObject):
    """Qt-facing wrapper around a VPNEngine."""

    # Signals
    snapshot_changed = pyqtSignal(object)  # Snapshot
    action_finished = pyqtSignal(str, bool)  # name, success
    error = pyqtSignal(str)

    def __init__(self, engine: VPNEngine, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.engine = engine
        self._thread = EngineThread()
        self._unsubscribe = None

    def start(self) -> Future:
        """Start the engine thread and the engine itself."""
        self._thread.start()
        if not self._thread.wait_ready():
            raise RuntimeError("Engine thread did not start")
        self._unsubscribe = self.engine.subscribe(self._on_snapshot)
        return self._submit(self.engine.start())

    def stop(self, timeout_ms: int = 5000) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._thread.loop is not None:
            self._thread.loop.call_soon_threadsafe(self.engine.stop)
        self._thread.stop_loop()
        self._thread.wait(timeout_ms)

    def snapshot(self) -> Snapshot:
        return self.engine.snapshot()

    def _submit(self, coro) -> Future:
        future = asyncio.run_coroutine_threadsafe(coro, self._thread.loop)
        future.add_done_callback(self._report_failure)
        return future

    def _report_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log.error("Engine call failed", exc_info=exc)
            self.error.emit(str(exc))

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot_changed.emit(snapshot)

    # Triggers

    def menu_opened(self) -> Future:
        return self._submit(self.engine.open_menu())

    def reload(self) -> Future:
        return self._submit(self.engine.reload())

    def network_changed(self) -> None:
        self.engine.monitor.notify_threadsafe()

    def hotkey_pressed(self) -> Future:
        return self._submit(self._hotkey())

    async def _hotkey(self):
        outcome = await self.engine.hotkey_pressed()
        if outcome is not None:
            self.action_finished.emit(*outcome)
        return outcome

    # Actions

    def connect_service(self, name: str) -> Future:
        return self._submit(self._action(self.engine.connect, name))

    def disconnect_service(self, name: str) -> Future:
        return self._submit(self._action(self.engine.disconnect, name))

    def toggle_service(self, name: str) -> Future:
        return self._submit(self._action(self.engine.toggle, name))

    async def _action(self, action, name: str) -> bool:
        success = await action(name)
        self.action_finished.emit(name, success)
        return success
