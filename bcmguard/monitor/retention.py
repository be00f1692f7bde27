"""
Day-partition retention.

Report and log areas hold one directory per day (YYYY-MM-DD). A directory is
deleted when its whole-day age is strictly greater than the retention policy.
Today's directory is always kept, and files at the top level are left alone.
"""

import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog

from bcmguard.reporting.context import DAY_FORMAT

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400


def age_in_days(mtime: float, now: datetime) -> int:
    """Whole days elapsed since mtime."""
    return int((now.timestamp() - mtime) // SECONDS_PER_DAY)


def expired_day_partitions(root: Path, retention_days: int, now: Optional[datetime] = None) -> List[Path]:
    """Day directories under root that are past retention."""
    now = now or datetime.now()
    root = Path(root)
    today = now.strftime(DAY_FORMAT)
    if not root.is_dir():
        return []

    expired = []
    for entry in sorted(os.scandir(root), key=lambda e: e.name):
        if not entry.is_dir(follow_symlinks=False) or entry.name == today:
            continue
        if age_in_days(entry.stat(follow_symlinks=False).st_mtime, now) > retention_days:
            expired.append(Path(entry.path))
    return expired


def cleanup_day_partitions(root: Path, retention_days: int, now: Optional[datetime] = None) -> List[Path]:
    """
    Delete expired day directories under root.

    Args:
        root: Report or log area
        retention_days: Directories older than this many whole days are removed
        now: Reference time (defaults to now)

    Returns:
        Directories actually deleted
    """
    deleted = []
    for path in expired_day_partitions(root, retention_days, now):
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning("Failed to delete expired directory", path=str(path), error=str(e))
            continue
        logger.debug("Deleted expired directory", path=str(path))
        deleted.append(path)
    return deleted
