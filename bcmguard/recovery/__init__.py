"""Phased recovery of a head node whose /var partition filled up."""

from .models import (
    EXIT_ABORTED,
    EXIT_FATAL,
    EXIT_SUCCESS,
    BackupRecord,
    BackupStatus,
    OutcomeStatus,
    Phase,
    PhaseResult,
    PhaseStatus,
    RunOutcome,
)
from .orchestrator import SYSLOG_BACKUP_NAME, RecoveryOrchestrator
from .restart import BoundedRestart, RestartReport
from .rsyslog import has_rate_limit_directive, rate_limit_addition, render_rate_limit_block

__all__ = [
    "EXIT_ABORTED",
    "EXIT_FATAL",
    "EXIT_SUCCESS",
    "BackupRecord",
    "BackupStatus",
    "BoundedRestart",
    "OutcomeStatus",
    "Phase",
    "PhaseResult",
    "PhaseStatus",
    "RecoveryOrchestrator",
    "RestartReport",
    "RunOutcome",
    "SYSLOG_BACKUP_NAME",
    "has_rate_limit_directive",
    "rate_limit_addition",
    "render_rate_limit_block",
]
