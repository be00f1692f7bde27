"""
Abstract host providers.

SystemFacts answers point-in-time, read-only questions about the host.
SystemControl performs mutating actions; every action returns an ActionResult
instead of raising, so callers can decide whether a failure is fatal, needs an
operator decision or is only worth a warning. The effect of each action can be
re-checked through SystemFacts.

Production implementations live in bcmguard.system.host; tests use in-memory
fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple


class ServiceState(Enum):
    """Coarse state of a system service."""
    ACTIVE = "active"
    FAILED = "failed"
    INACTIVE = "inactive"


class SyslogPriority(Enum):
    """System log priorities used for alerts (facility is always daemon)."""
    CRITICAL = "crit"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class DiskUsage:
    """Usage of the filesystem containing a path, in bytes."""
    mount_point: str
    total_bytes: int
    used_bytes: int
    free_bytes: int

    @property
    def percent(self) -> int:
        """Percentage full, rounded up the way df reports it."""
        capacity = self.used_bytes + self.free_bytes
        if capacity <= 0:
            return 0
        return -(-self.used_bytes * 100 // capacity)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a mutating host action."""
    ok: bool
    detail: str = ""
    output: str = ""
    returncode: Optional[int] = None
    timed_out: bool = False

    @classmethod
    def success(cls, detail: str = "", output: str = "", returncode: Optional[int] = 0) -> "ActionResult":
        return cls(ok=True, detail=detail, output=output, returncode=returncode)

    @classmethod
    def failure(cls, detail: str, output: str = "", returncode: Optional[int] = None,
                timed_out: bool = False) -> "ActionResult":
        return cls(ok=False, detail=detail, output=output, returncode=returncode, timed_out=timed_out)


class SystemFacts(ABC):
    """Read-only queries against the host."""

    @abstractmethod
    def is_privileged(self) -> bool:
        """True when running with root privileges."""
        pass

    @abstractmethod
    def has_command(self, name: str) -> bool:
        """True when an executable with this name is on PATH."""
        pass

    @abstractmethod
    def hostname(self) -> str:
        pass

    @abstractmethod
    def disk_usage(self, path: str) -> DiskUsage:
        """Usage of the filesystem that contains path."""
        pass

    def free_bytes(self, path: str) -> int:
        return self.disk_usage(path).free_bytes

    @abstractmethod
    def file_size(self, path: str) -> Optional[int]:
        """Size of a regular file in bytes, or None when it does not exist."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        pass

    @abstractmethod
    def read_text(self, path: str) -> Optional[str]:
        """Whole file content, or None when the file cannot be read."""
        pass

    @abstractmethod
    def tail_lines(self, path: str, count: int) -> Optional[List[str]]:
        """Last count lines of a file, or None when it cannot be read."""
        pass

    @abstractmethod
    def list_matching(self, directory: str, pattern: str) -> List[str]:
        """Paths of entries in directory whose names match a glob pattern."""
        pass

    @abstractmethod
    def directory_sizes(self, root: str) -> List[Tuple[str, int]]:
        """
        Allocated size of each immediate subdirectory of root.

        Subdirectories that cannot be read are left out.
        """
        pass

    @abstractmethod
    def service_state(self, name: str) -> ServiceState:
        pass

    def is_service_active(self, name: str) -> bool:
        return self.service_state(name) == ServiceState.ACTIVE

    @abstractmethod
    def service_status_text(self, name: str, max_lines: int = 15) -> str:
        """Human-readable status of a service, for the run log."""
        pass


class SystemControl(ABC):
    """Mutating host actions."""

    @abstractmethod
    def make_directory(self, path: str) -> ActionResult:
        pass

    @abstractmethod
    def copy_file(self, source: str, destination: str) -> ActionResult:
        pass

    @abstractmethod
    def truncate_file(self, path: str) -> ActionResult:
        """Truncate an existing file to zero length."""
        pass

    @abstractmethod
    def write_file(self, path: str, content: str) -> ActionResult:
        """Replace a file's content."""
        pass

    @abstractmethod
    def append_file(self, path: str, content: str) -> ActionResult:
        pass

    @abstractmethod
    def remove_files(self, paths: Sequence[str]) -> ActionResult:
        pass

    @abstractmethod
    def restart_service(self, name: str, timeout: Optional[float] = None) -> ActionResult:
        pass

    @abstractmethod
    def flush_mail_queue(self) -> ActionResult:
        pass

    @abstractmethod
    def validate_rotation_config(self, path: str) -> ActionResult:
        """Dry-run the log rotation tool against a config file."""
        pass

    @abstractmethod
    def run_diagnostic(self, argv: Sequence[str], timeout: float) -> ActionResult:
        """Run a read-only diagnostic command bounded by a timeout."""
        pass

    @abstractmethod
    def emit_syslog(self, priority: SyslogPriority, tag: str, message: str) -> ActionResult:
        """Send one message to the host's system log (daemon facility)."""
        pass
