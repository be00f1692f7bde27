"""
Host implementations of SystemFacts and SystemControl.

Disk figures come from psutil; service control and the other host tools are
run through subprocess. Expected host failures (missing files, permission
errors, non-zero exits, timeouts) are turned into None results or failed
ActionResults so the caller decides how severe they are.
"""

import fnmatch
import logging
import os
import shutil
import socket
import subprocess
from collections import deque
from logging.handlers import SysLogHandler
from typing import List, Optional, Sequence, Tuple

import psutil
import structlog

from .interfaces import (
    ActionResult,
    DiskUsage,
    ServiceState,
    SyslogPriority,
    SystemControl,
    SystemFacts,
)

logger = structlog.get_logger(__name__)

SYSLOG_SOCKET = "/dev/log"

_SYSLOG_LEVELS = {
    SyslogPriority.CRITICAL: logging.CRITICAL,
    SyslogPriority.WARNING: logging.WARNING,
    SyslogPriority.INFO: logging.INFO,
}


def run_command(argv: Sequence[str], timeout: Optional[float] = None) -> ActionResult:
    """Run a command, capturing combined output, and never raise."""
    command = " ".join(argv)
    try:
        completed = subprocess.run(
            list(argv),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        output = e.output if isinstance(e.output, str) else (e.output or b"").decode(errors="replace")
        logger.warning("Command timed out", command=command, timeout=timeout)
        return ActionResult.failure(f"'{command}' timed out after {timeout}s", output=output, timed_out=True)
    except OSError as e:
        logger.warning("Command could not be started", command=command, error=str(e))
        return ActionResult.failure(f"'{command}' could not be started: {e}")

    if completed.returncode != 0:
        return ActionResult.failure(
            f"'{command}' exited with code {completed.returncode}",
            output=completed.stdout or "",
            returncode=completed.returncode,
        )
    return ActionResult.success(output=completed.stdout or "", returncode=0)


def find_mount_point(path: str) -> str:
    """Mount point of the filesystem containing path."""
    current = os.path.realpath(path)
    while not os.path.ismount(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


class HostSystemFacts(SystemFacts):
    """Read-only queries against the local host."""

    def is_privileged(self) -> bool:
        return os.geteuid() == 0

    def has_command(self, name: str) -> bool:
        return shutil.which(name) is not None

    def hostname(self) -> str:
        return socket.gethostname()

    def disk_usage(self, path: str) -> DiskUsage:
        usage = psutil.disk_usage(path)
        return DiskUsage(
            mount_point=find_mount_point(path),
            total_bytes=usage.total,
            used_bytes=usage.used,
            free_bytes=usage.free,
        )

    def file_size(self, path: str) -> Optional[int]:
        try:
            return os.stat(path).st_size
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Unable to stat file", path=path, error=str(e))
            return None

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def read_text(self, path: str) -> Optional[str]:
        try:
            with open(path, "r", errors="replace") as f:
                return f.read()
        except OSError as e:
            logger.warning("Unable to read file", path=path, error=str(e))
            return None

    def tail_lines(self, path: str, count: int) -> Optional[List[str]]:
        try:
            with open(path, "r", errors="replace") as f:
                return [line.rstrip("\n") for line in deque(f, maxlen=count)]
        except OSError as e:
            logger.debug("Unable to tail file", path=path, error=str(e))
            return None

    def list_matching(self, directory: str, pattern: str) -> List[str]:
        try:
            names = os.listdir(directory)
        except OSError:
            return []
        return sorted(os.path.join(directory, name) for name in fnmatch.filter(names, pattern))

    def directory_sizes(self, root: str) -> List[Tuple[str, int]]:
        sizes = []
        try:
            entries = list(os.scandir(root))
        except OSError as e:
            logger.warning("Unable to list directory", path=root, error=str(e))
            return sizes

        for entry in entries:
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            size = self._allocated_size(entry.path)
            if size is not None:
                sizes.append((entry.path, size))
        return sizes

    def _allocated_size(self, top: str) -> Optional[int]:
        """du -s style size; None if top itself cannot be read."""
        try:
            os.listdir(top)
        except PermissionError:
            logger.debug("Skipping unreadable directory", path=top)
            return None
        except OSError:
            return None

        seen = set()
        total = 0
        # Unreadable nested directories only lose their own contribution.
        for dirpath, _dirnames, filenames in os.walk(top, onerror=lambda e: None):
            for name in [dirpath] + [os.path.join(dirpath, n) for n in filenames]:
                try:
                    st = os.lstat(name)
                except OSError:
                    continue
                key = (st.st_dev, st.st_ino)
                if key in seen:
                    continue
                seen.add(key)
                blocks = getattr(st, "st_blocks", None)
                total += blocks * 512 if blocks is not None else st.st_size
        return total

    def service_state(self, name: str) -> ServiceState:
        if run_command(["systemctl", "is-active", "--quiet", name]).ok:
            return ServiceState.ACTIVE
        if run_command(["systemctl", "is-failed", "--quiet", name]).ok:
            return ServiceState.FAILED
        return ServiceState.INACTIVE

    def service_status_text(self, name: str, max_lines: int = 15) -> str:
        result = run_command(["systemctl", "status", name, "--no-pager", "-l"])
        return "\n".join(result.output.splitlines()[:max_lines])


class _StrictSysLogHandler(SysLogHandler):
    """SysLogHandler that lets emission errors reach the caller."""

    def handleError(self, record):
        raise


class HostSystemControl(SystemControl):
    """Mutating actions against the local host."""

    def __init__(self, syslog_address: str = SYSLOG_SOCKET):
        self.syslog_address = syslog_address

    def make_directory(self, path: str) -> ActionResult:
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            return ActionResult.failure(f"Failed to create directory {path}: {e}")
        return ActionResult.success(detail=path)

    def copy_file(self, source: str, destination: str) -> ActionResult:
        try:
            shutil.copy(source, destination)
        except OSError as e:
            return ActionResult.failure(f"Failed to copy {source} to {destination}: {e}")
        return ActionResult.success(detail=destination)

    def truncate_file(self, path: str) -> ActionResult:
        try:
            os.truncate(path, 0)
        except OSError as e:
            return ActionResult.failure(f"Failed to truncate {path}: {e}")
        return ActionResult.success(detail=path)

    def write_file(self, path: str, content: str) -> ActionResult:
        try:
            with open(path, "w") as f:
                f.write(content)
        except OSError as e:
            return ActionResult.failure(f"Failed to write {path}: {e}")
        return ActionResult.success(detail=path)

    def append_file(self, path: str, content: str) -> ActionResult:
        try:
            with open(path, "a") as f:
                f.write(content)
        except OSError as e:
            return ActionResult.failure(f"Failed to append to {path}: {e}")
        return ActionResult.success(detail=path)

    def remove_files(self, paths: Sequence[str]) -> ActionResult:
        removed = 0
        for path in paths:
            try:
                os.remove(path)
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                return ActionResult.failure(f"Failed to remove {path} after removing {removed} file(s): {e}")
        return ActionResult.success(detail=f"{removed} file(s) removed")

    def restart_service(self, name: str, timeout: Optional[float] = None) -> ActionResult:
        return run_command(["systemctl", "restart", name], timeout=timeout)

    def flush_mail_queue(self) -> ActionResult:
        return run_command(["postsuper", "-d", "ALL"])

    def validate_rotation_config(self, path: str) -> ActionResult:
        return run_command(["logrotate", "-d", path])

    def run_diagnostic(self, argv: Sequence[str], timeout: float) -> ActionResult:
        return run_command(argv, timeout=timeout)

    def emit_syslog(self, priority: SyslogPriority, tag: str, message: str) -> ActionResult:
        record = logging.makeLogRecord({
            "name": tag,
            "levelno": _SYSLOG_LEVELS[priority],
            "levelname": logging.getLevelName(_SYSLOG_LEVELS[priority]),
            "msg": message,
        })
        try:
            handler = _StrictSysLogHandler(address=self.syslog_address, facility=SysLogHandler.LOG_DAEMON)
        except OSError as e:
            return ActionResult.failure(f"System log unavailable at {self.syslog_address}: {e}")
        try:
            handler.ident = f"{tag}: "
            handler.emit(record)
        except OSError as e:
            return ActionResult.failure(f"Failed to write to system log: {e}")
        finally:
            handler.close()
        return ActionResult.success()
