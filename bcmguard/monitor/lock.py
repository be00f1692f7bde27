"""
Single-instance lock for the monitor.

An advisory flock on a well-known file. Acquisition never blocks: if another
process holds the lock, acquire() returns False straight away. The kernel
drops the lock when the holder exits, so a crashed run never leaves a stale
lock behind.
"""

import fcntl
import os
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class MonitorLock:
    """Exclusive, non-blocking advisory lock on lock_file."""

    def __init__(self, lock_file: str):
        self.lock_file = Path(lock_file)
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> bool:
        if self._fd is not None:
            return True

        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.lock_file), os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            logger.info("Lock held by another process", lock_file=str(self.lock_file))
            return False
        except OSError:
            os.close(fd)
            raise

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        return True

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "MonitorLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
