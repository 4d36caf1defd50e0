"""Parsing of networksetup / scutil text output.

Two listing formats are understood:

- ``networksetup -listnetworkserviceorder``::

      An asterisk (*) denotes that a network service is disabled.
      (1) CorpVPN
      (Hardware Port: VPN, Device: ppp0)

- ``scutil --nc list``::

      * (Connected)  7E1F... PPP --> L2TP  "CorpVPN"  [PPP:L2TP]

Parsing never raises: unreadable records are logged and skipped.
"""

import logging
import re
from typing import Iterable, List, Optional

from vipinator.constants import EXCLUDED_SERVICES
from vipinator.errors import ParseAmbiguity
from vipinator.models import Connection, Status

log = logging.getLogger(__name__)

_RECORD_START = re.compile(r"^\s*\((?:\d+|\*)\)")
_INDEX_TOKEN = re.compile(r"^\(\d+\)\s*")
_DISABLED_MARKER = "(*)"

_NC_NAME = re.compile(r'"([^"]+)"')
_NC_STATUS = re.compile(r"\(([^)]+)\)")
_NC_TYPE = re.compile(r"\[(VPN|PPP):([^\]]+)\]")

_EXCLUDED = frozenset(name.casefold() for name in EXCLUDED_SERVICES)

_STATUS_WORDS = {
    "connected": Status.CONNECTED,
    "connecting": Status.CONNECTING,
    "disconnecting": Status.DISCONNECTING,
    "disconnected": Status.DISCONNECTED,
}


def resolve_status(text: Optional[str]) -> Status:
    """Map the output of ``-showpppoestatus`` to a Status.

    Total: anything that is not one of the four known words (after
    trimming, ignoring case) is ``Status.INVALID``.
    """
    if not text:
        return Status.INVALID
    return _STATUS_WORDS.get(text.strip().lower(), Status.INVALID)


def is_excluded(name: str) -> bool:
    return name.strip().casefold() in _EXCLUDED


def _extract_name(line: str) -> str:
    name = line.strip().replace(_DISABLED_MARKER, "")
    name = _INDEX_TOKEN.sub("", name.strip())
    return name.strip()


def _parse_port_line(line: str) -> tuple:
    """Split ``(Hardware Port: VPN, Device: ppp0)`` into (port, device)."""
    parts = line.strip().split(",")
    if len(parts) < 2:
        raise ParseAmbiguity(f"Hardware port line without device field: {line!r}")

    port = parts[0].strip().replace("(Hardware Port:", "").strip()
    device = parts[1].strip().replace("Device:", "").strip()
    if device.endswith(")"):
        device = device[:-1].strip()
    return port, device


def _dedupe(connections: Iterable[Connection]) -> List[Connection]:
    seen = set()
    result = []
    for conn in connections:
        if conn.name in seen:
            log.debug(f"Duplicate service name skipped: {conn.name}")
            continue
        seen.add(conn.name)
        result.append(conn)
    return result


def parse_service_order(output: Optional[str]) -> List[Connection]:
    """Parse ``networksetup -listnetworkserviceorder`` output.

    Args:
        output: Raw stdout of the listing command

    Returns:
        Candidate VPN connections in service priority order, all
        initially Disconnected
    """
    if not output:
        return []

    found: List[Connection] = []
    name: Optional[str] = None
    port: Optional[str] = None
    device = ""

    def finish():
        if not name or port is None:
            if name or port is not None:
                log.debug(f"Incomplete service record skipped: name={name!r} port={port!r}")
            return
        if is_excluded(name):
            return
        found.append(Connection(name=name, hardware_port=port, device=device))

    for line in output.splitlines():
        if _RECORD_START.match(line):
            finish()
            name = _extract_name(line)
            port = None
            device = ""
        elif "Hardware Port:" in line:
            if name is None or port is not None:
                # Port line with no open record
                continue
            try:
                port, device = _parse_port_line(line)
            except ParseAmbiguity as e:
                log.debug(str(e))

    finish()
    return _dedupe(found)


def parse_nc_list(output: Optional[str]) -> List[Connection]:
    """Parse ``scutil --nc list`` output.

    Only lines tagged ``[VPN:...]`` or ``[PPP:...]`` are services. The
    status in parentheses is kept, so no per-service status call is
    needed for this format.
    """
    if not output:
        return []

    found = []
    for line in output.splitlines():
        line = line.strip()
        type_match = _NC_TYPE.search(line)
        if not type_match:
            continue

        name_match = _NC_NAME.search(line)
        if not name_match or not name_match.group(1).strip():
            log.debug(f"Service line without a name skipped: {line!r}")
            continue
        name = name_match.group(1).strip()
        if is_excluded(name):
            continue

        status_match = _NC_STATUS.search(line)
        status = resolve_status(status_match.group(1)) if status_match else Status.INVALID

        found.append(
            Connection(name=name, hardware_port=type_match.group(2).strip(), status=status)
        )

    return _dedupe(found)
