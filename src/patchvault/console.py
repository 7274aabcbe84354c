"""Display helpers shared by the CLI commands."""

import sys
from datetime import UTC, datetime


def is_input_terminal() -> bool:
    """Checks if stdin is a TTY."""
    return sys.stdin.isatty()


def format_bytes(size: int) -> str:
    """Formats a byte count for display, using binary units above 1 KiB."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KiB"
    return f"{size / (1024 * 1024):.1f} MiB"


def format_timestamp(timestamp_ms: int) -> str:
    """Renders an epoch-milliseconds timestamp as local ISO time."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).astimezone().isoformat(timespec="milliseconds")
