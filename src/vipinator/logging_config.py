"""Logging setup shared by the CLI and the tray app."""

import logging
from pathlib import Path
from typing import Optional

from vipinator.constants import LOG_FILE

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[Path] = LOG_FILE) -> None:
    """Configure root logging to stderr and, if possible, a log file.

    Args:
        level: Level name, e.g. "DEBUG"
        log_file: Log file path, None to log to stderr only
    """
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError:
            pass  # stderr only

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
