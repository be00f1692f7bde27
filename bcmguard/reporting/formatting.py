"""Human-readable sizes and df-style summaries."""

import math
from typing import List

from bcmguard.system.interfaces import DiskUsage

_UNITS = ["K", "M", "G", "T", "P"]


def format_bytes(size: int) -> str:
    """
    Format a byte count the way ``du -h`` does.

    Values are rounded up; below 10 units one decimal is kept.

    >>> format_bytes(1536)
    '1.5K'
    >>> format_bytes(5 * 1024 ** 3)
    '5.0G'
    """
    if size < 1024:
        return str(size)
    value = float(size)
    unit = ""
    for unit in _UNITS:
        value /= 1024
        if value < 1024:
            break
    if value < 10:
        return f"{math.ceil(value * 10) / 10:.1f}{unit}"
    return f"{math.ceil(value)}{unit}"


def disk_usage_lines(usage: DiskUsage) -> List[str]:
    """Two-line df -h style table for one filesystem."""
    header = f"{'Size':>6} {'Used':>6} {'Avail':>6} {'Use%':>5} Mounted on"
    row = (
        f"{format_bytes(usage.total_bytes):>6} "
        f"{format_bytes(usage.used_bytes):>6} "
        f"{format_bytes(usage.free_bytes):>6} "
        f"{str(usage.percent) + '%':>5} {usage.mount_point}"
    )
    return [header, row]


def format_duration(seconds: float) -> str:
    """Format a duration in a human-readable form."""
    if seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    return f"{seconds / 3600:.1f}h"
