"""
Data models for the recovery workflow.

Phases and steps report through PhaseResult values rather than exceptions so
every failure path is visible where the phase is driven.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_ABORTED = 2


class Phase(Enum):
    """Recovery phases, in execution order."""
    PREFLIGHT = "Pre-flight"
    BACKUP_AND_RECLAIM = "Backup & Reclaim"
    SERVICE_RESTORATION = "Service Restoration"
    PREVENTIVE_CONFIG = "Preventive Configuration"


class PhaseStatus(Enum):
    OK = "ok"
    ABORT = "abort"
    FATAL = "fatal"


@dataclass(frozen=True)
class PhaseResult:
    """Tagged result of a phase or of one step inside a phase."""
    status: PhaseStatus
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "PhaseResult":
        return cls(PhaseStatus.OK)

    @classmethod
    def abort(cls, reason: str) -> "PhaseResult":
        return cls(PhaseStatus.ABORT, reason)

    @classmethod
    def fatal(cls, reason: str) -> "PhaseResult":
        return cls(PhaseStatus.FATAL, reason)

    @property
    def is_ok(self) -> bool:
        return self.status == PhaseStatus.OK


class BackupStatus(Enum):
    """Verification outcome of a preserved copy."""
    VERIFIED = "verified"
    SIZE_MISMATCH = "size_mismatch"
    NOT_FOUND = "not_found"
    COPY_FAILED = "copy_failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class BackupRecord:
    """
    Audit entry for a copy taken before a destructive or mutating action.

    operator_override is set when the operator chose to carry on even though
    the copy failed or could not be verified. A SKIPPED record means the
    operator asked for no data backup up front.
    """
    source: str
    destination: Optional[str]
    status: BackupStatus
    size_before: Optional[int] = None
    size_after: Optional[int] = None
    operator_override: bool = False
    created_at: datetime = field(default_factory=datetime.now)


class OutcomeStatus(Enum):
    SUCCESS = "success"
    ABORTED = "aborted"
    FATAL = "fatal"


@dataclass(frozen=True)
class RunOutcome:
    """Final result of a recovery run."""
    status: OutcomeStatus
    log_file: Path
    backup_dir: Optional[Path]
    completed_phases: Tuple[Phase, ...] = ()
    backup_records: Tuple[BackupRecord, ...] = ()
    phase: Optional[Phase] = None
    reason: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def exit_code(self) -> int:
        if self.status == OutcomeStatus.SUCCESS:
            return EXIT_SUCCESS
        if self.status == OutcomeStatus.ABORTED:
            return EXIT_ABORTED
        return EXIT_FATAL

    def records_for(self, source: str) -> List[BackupRecord]:
        return [record for record in self.backup_records if record.source == source]
