"""Helpers shared by the CLI command implementations."""

from __future__ import annotations

import sys
from datetime import datetime
from typing import NoReturn

from wattmon.config import load_config
from wattmon.errors import WattmonError
from wattmon.service import MonitorService

SECTION_SEP = "=" * 40
HEADING_UNDERLINE = "---"


def fail(exc: BaseException | str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    print(f"Error: {exc}", file=sys.stderr)
    sys.exit(1)


def load_service(config_path: str | None) -> MonitorService:
    """Load configuration and build the service, exiting on config errors."""
    try:
        return MonitorService(load_config(config_path))
    except WattmonError as exc:
        fail(exc)


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3600:
        m = int(seconds // 60)
        s = seconds % 60
        return f"{m}m{s:.0f}s"
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    return f"{h}h{m}m"


def format_time(value: datetime | None) -> str:
    """Render a UTC timestamp in local time, or '-' when missing."""
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")
