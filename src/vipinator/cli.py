"""Command line interface.

Usage:
    vipinator list
    vipinator connect "Corp VPN"
    vipinator toggle            # last used VPN, like the hotkey
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from vipinator.config import load_settings
from vipinator.constants import APP_NAME, VERSION
from vipinator.engine import VPNEngine
from vipinator.logging_config import setup_logging
from vipinator.models import Snapshot, Status

GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
BOLD = "\033[1m"
NC = "\033[0m"

STATUS_COLORS = {
    Status.CONNECTED: GREEN,
    Status.CONNECTING: YELLOW,
    Status.DISCONNECTING: YELLOW,
    Status.DISCONNECTED: NC,
    Status.INVALID: RED,
}


def print_snapshot(snapshot: Snapshot, last_used: Optional[str] = None) -> None:
    if not len(snapshot):
        print(f"{YELLOW}No VPN services configured.{NC}")
        return

    print(f"{CYAN}VPN Services:{NC}\n")
    for conn in snapshot:
        color = STATUS_COLORS[conn.status]
        marker = " *" if conn.name == last_used else ""
        print(f"  {BOLD}{conn.name}{NC}{marker}")
        print(f"    Type:   {conn.hardware_port}")
        print(f"    Status: {color}{conn.status.value}{NC}")
    print()
    state = f"{GREEN}active{NC}" if snapshot.any_active else "inactive"
    print(f"VPN {state}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vipinator",
        description=f"{APP_NAME} - control macOS VPN services",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List VPN services and their status")
    status = sub.add_parser("status", help="Show the status of one service")
    status.add_argument("name")
    connect = sub.add_parser("connect", help="Connect a VPN service")
    connect.add_argument("name")
    disconnect = sub.add_parser("disconnect", help="Disconnect a VPN service")
    disconnect.add_argument("name")
    toggle = sub.add_parser("toggle", help="Toggle a service (default: last used)")
    toggle.add_argument("name", nargs="?")
    last_used = sub.add_parser("last-used", help="Show or clear the last used service")
    last_used.add_argument("--clear", action="store_true", help="Forget the last used service")
    return parser


async def run_command(engine: VPNEngine, args: argparse.Namespace) -> int:
    """Execute one parsed command against a started engine.

    Returns:
        Process exit code
    """
    if args.command == "last-used":
        if args.clear:
            engine.store.clear()
            print("Last used VPN cleared.")
            return 0
        name = engine.last_used()
        print(name if name else f"{YELLOW}No VPN used yet.{NC}")
        return 0

    snapshot = await engine.start()
    try:
        if args.command == "list":
            print_snapshot(snapshot, engine.last_used())
            return 0

        if args.command == "toggle" and not args.name:
            outcome = await engine.hotkey_pressed()
            if outcome is None:
                print(f"{YELLOW}No VPN services configured.{NC}")
                return 1
            name, success = outcome
        else:
            name = args.name
            if snapshot.get(name) is None:
                print(f"{RED}Unknown VPN service: {name}{NC}")
                return 1
            if args.command == "status":
                print(engine.snapshot().get(name).status.value)
                return 0
            action = getattr(engine, args.command)
            success = await action(name)

        status = engine.snapshot().get(name)
        value = status.status.value if status else "unknown"
        color = GREEN if success else RED
        print(f"{color}{name}: {value}{NC}")
        return 0 if success else 1
    finally:
        engine.stop()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    setup_logging("DEBUG" if args.debug else settings.log_level)
    engine = VPNEngine(settings)
    return asyncio.run(run_command(engine, args))


if __name__ == "__main__":
    sys.exit(main())
