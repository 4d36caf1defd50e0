"""Global hotkey handling: toggle the last used VPN."""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from vipinator.controller import ConnectionController
from vipinator.coordinator import RefreshCoordinator, Trigger
from vipinator.last_used import LastUsedStore
from vipinator.registry import ConnectionRegistry

log = logging.getLogger(__name__)

# Modifier names in display order
MODIFIERS = ("cmd", "shift", "option", "control")
MODIFIER_SYMBOLS = {"cmd": "⌘", "shift": "⇧", "option": "⌥", "control": "⌃"}


@dataclass(frozen=True)
class HotkeyBinding:
    """A key plus modifiers, e.g. Cmd+Shift+V."""

    key: str = "V"
    modifiers: Tuple[str, ...] = ("cmd", "shift")

    @classmethod
    def parse(cls, text: str) -> "HotkeyBinding":
        """Parse ``"cmd+shift+v"`` style text.

        Raises:
            ValueError: If the text has no key or an unknown modifier
        """
        parts = [p.strip().lower() for p in text.split("+") if p.strip()]
        if not parts:
            raise ValueError("Empty hotkey")
        *mods, key = parts
        unknown = [m for m in mods if m not in MODIFIERS]
        if unknown or key in MODIFIERS:
            raise ValueError(f"Invalid hotkey: {text!r}")
        ordered = tuple(m for m in MODIFIERS if m in mods)
        return cls(key=key.upper(), modifiers=ordered)

    def display_string(self) -> str:
        symbols = [MODIFIER_SYMBOLS[m] for m in MODIFIERS if m in self.modifiers]
        symbols.append(self.key)
        return " ".join(symbols)

    def __str__(self) -> str:
        return "+".join([*self.modifiers, self.key.lower()])


DEFAULT_HOTKEY = HotkeyBinding()


class HotkeyToggleService:
    """Turns hotkey presses into a toggle of the last used connection.

    The service is inert until ``start()`` and after ``stop()``; the
    platform hotkey registration calls ``handle_hotkey()``.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        coordinator: RefreshCoordinator,
        controller: ConnectionController,
        store: LastUsedStore,
        binding: HotkeyBinding = DEFAULT_HOTKEY,
    ):
        self._registry = registry
        self._coordinator = coordinator
        self._controller = controller
        self._store = store
        self.binding = binding
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True
        log.info(f"Hotkey {self.binding.display_string()} active")

    def stop(self) -> None:
        self._running = False

    def resolve_target(self) -> Optional[str]:
        """Pick the connection a hotkey press should toggle.

        Returns:
            The last used connection if it is still known, otherwise the
            first known connection, otherwise None
        """
        snapshot = self._registry.snapshot()
        last_used = self._store.load()
        if last_used and snapshot.get(last_used) is not None:
            return last_used
        if len(snapshot):
            return snapshot.connections[0].name
        return None

    async def handle_hotkey(self) -> Optional[Tuple[str, bool]]:
        """Toggle the target connection.

        Returns:
            (name, success) or None if nothing was toggled
        """
        if not self._running:
            return None

        if self._registry.is_empty():
            await self._coordinator.refresh_discovery()

        target = self.resolve_target()
        if target is None:
            log.info("Hotkey pressed but no VPN services are configured")
            return None

        log.info(f"Hotkey toggling {target}")
        success = await self._controller.toggle(target)
        await self._coordinator.request(Trigger.HOTKEY)
        return target, success
