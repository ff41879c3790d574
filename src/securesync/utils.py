"""Utility functions for securesync."""

import secrets
import time
import uuid
from datetime import datetime, timezone


def normalize_path(path: str) -> str:
    """Normalize a workspace-relative path to forward slashes."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def now_ms() -> int:
    """Current time as Unix epoch milliseconds."""
    return time.time_ns() // 1_000_000


def new_snapshot_id() -> str:
    """Generate a fresh time-ordered identifier (RFC 9562 UUID version 7).

    The first 48 bits are the Unix epoch in milliseconds, so ids sort by
    creation time when compared as strings.
    """
    unix_ms = now_ms() & ((1 << 48) - 1)
    rand_a = secrets.randbits(12)
    rand_b = secrets.randbits(62)
    value = (unix_ms << 80) | (0x7 << 76) | (rand_a << 64) | (0b10 << 62) | rand_b
    return str(uuid.UUID(int=value))


def quarantine_timestamp(moment: datetime | None = None) -> str:
    """ISO 8601 UTC timestamp that is safe to use as a directory name.

    Examples:
        2025-08-26T02:51:17.317Z -> "2025-08-26T02-51-17-317Z"
    """
    moment = moment or datetime.now(timezone.utc)
    moment = moment.astimezone(timezone.utc)
    stamp = moment.strftime("%Y-%m-%dT%H-%M-%S")
    return f"{stamp}-{moment.microsecond // 1000:03d}Z"


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_ms(timestamp_ms: int) -> str:
    """Format an epoch-milliseconds timestamp for display.

    Examples:
        1756176677317 -> "2025-08-26 02:51:17"
    """
    if not timestamp_ms:
        return "-"
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def humanize_age(timestamp_ms: int) -> str:
    """Convert an epoch-milliseconds timestamp to relative time.

    Examples:
        two hours ago -> "2 hours ago"
        five days ago -> "5 days ago"
    """
    seconds = (now_ms() - timestamp_ms) / 1000

    if seconds < 60:
        return "just now"
    elif seconds < 3600:  # Less than 1 hour
        minutes = int(seconds / 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    elif seconds < 86400:  # Less than 1 day
        hours = int(seconds / 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    elif seconds < 2592000:  # Less than 30 days
        days = int(seconds / 86400)
        return f"{days} day{'s' if days != 1 else ''} ago"
    else:
        return format_ms(timestamp_ms)
