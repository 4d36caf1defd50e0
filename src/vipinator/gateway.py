"""Gateway to the OS network configuration commands.

Every call goes through one async contract, ``_run()``, which starts the
command with ``asyncio.create_subprocess_exec`` and returns a
``CommandResult``. Process-level failures are raised as GatewayError
subclasses; merely unexpected text is returned as-is for the parser.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from vipinator.constants import NETWORKSETUP_PATH, SCUTIL_PATH
from vipinator.errors import GatewayExecutionError, GatewayLaunchError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one OS command."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class GatewayProtocol(Protocol):
    """Interface the engine needs from the OS.

    Implementations raise GatewayLaunchError / GatewayExecutionError on
    failure and never return None.
    """

    async def list_services(self) -> str:
        """Enumerate all configured network services.

        Returns:
            Raw listing text (non-empty)
        """
        ...

    async def list_nc_services(self) -> str:
        """Enumerate VPN services with their status inline.

        Returns:
            Raw ``scutil --nc list`` text (non-empty)
        """
        ...

    async def show_status(self, name: str) -> str:
        """Get the single-word status for one service.

        Args:
            name: Service name

        Returns:
            Raw status text
        """
        ...

    async def connect(self, name: str) -> None:
        """Ask the OS to connect a service."""
        ...

    async def disconnect(self, name: str) -> None:
        """Ask the OS to disconnect a service."""
        ...


class NetworkSetupGateway:
    """Gateway backed by macOS ``networksetup``."""

    def __init__(self, networksetup: str = NETWORKSETUP_PATH, scutil: str = SCUTIL_PATH):
        """Initialize the gateway.

        Args:
            networksetup: Path to the networksetup binary
            scutil: Path to the scutil binary
        """
        self._networksetup = networksetup
        self._scutil = scutil

    async def _run(self, program: str, args: Sequence[str]) -> CommandResult:
        command = (program, *args)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GatewayLaunchError(f"Cannot run {program}: {e}", command) from e

        stdout, stderr = await proc.communicate()
        try:
            result = CommandResult(
                stdout=stdout.decode("utf-8").strip(),
                stderr=stderr.decode("utf-8").strip(),
                returncode=proc.returncode,
            )
        except UnicodeDecodeError as e:
            raise GatewayExecutionError(
                f"Undecodable output from {program}", command, proc.returncode
            ) from e

        log.debug(f"{' '.join(command)} -> rc={result.returncode}")
        if not result.ok:
            raise GatewayExecutionError(
                result.stderr or result.stdout or f"{program} exited with {result.returncode}",
                command,
                result.returncode,
                result.stderr,
            )
        return result

    async def _run_for_output(self, program: str, args: Sequence[str]) -> str:
        """Run a command whose stdout must not be empty."""
        result = await self._run(program, args)
        if result.stdout:
            return result.stdout
        raise GatewayExecutionError(
            result.stderr or f"{program} produced no output",
            (program, *args),
            result.returncode,
            result.stderr,
        )

    async def list_services(self) -> str:
        return await self._run_for_output(self._networksetup, ["-listnetworkserviceorder"])

    async def list_nc_services(self) -> str:
        """Get ``scutil --nc list`` output (services with inline status)."""
        return await self._run_for_output(self._scutil, ["--nc", "list"])

    async def show_status(self, name: str) -> str:
        return await self._run_for_output(self._networksetup, ["-showpppoestatus", name])

    async def connect(self, name: str) -> None:
        # Empty stdout is the normal success case here
        await self._run(self._networksetup, ["-connectpppoeservice", name])

    async def disconnect(self, name: str) -> None:
        await self._run(self._networksetup, ["-disconnectpppoeservice", name])
