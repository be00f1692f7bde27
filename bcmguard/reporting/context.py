"""
Per-invocation run context.

A RunContext is created once at process entry and resolves where this run
writes: the day-partitioned log file, the monitor report file and the
recovery backup directory. Nothing here touches the filesystem.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from bcmguard.config import GuardConfig

RECOVERY_COMPONENT = "bcm-recovery"
MONITOR_COMPONENT = "bcm-log-monitor"

RUN_ID_FORMAT = "%Y%m%d_%H%M%S"
DAY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class RunContext:
    """Identifiers and resolved paths for one run."""
    component: str
    started_at: datetime
    run_id: str
    run_date: str
    log_file: Path
    report_file: Optional[Path] = None
    backup_dir: Optional[Path] = None
    interactive: bool = False

    @classmethod
    def for_recovery(cls, config: GuardConfig, now: Optional[datetime] = None,
                     interactive: bool = True) -> "RunContext":
        now = now or datetime.now()
        run_id = now.strftime(RUN_ID_FORMAT)
        run_date = now.strftime(DAY_FORMAT)
        return cls(
            component=RECOVERY_COMPONENT,
            started_at=now,
            run_id=run_id,
            run_date=run_date,
            log_file=Path(config.log_dir) / run_date / f"{RECOVERY_COMPONENT}.log",
            backup_dir=Path(config.backup_base_dir) / run_id,
            interactive=interactive,
        )

    @classmethod
    def for_monitor(cls, config: GuardConfig, now: Optional[datetime] = None,
                    interactive: bool = False) -> "RunContext":
        now = now or datetime.now()
        run_date = now.strftime(DAY_FORMAT)
        return cls(
            component=MONITOR_COMPONENT,
            started_at=now,
            run_id=now.strftime(RUN_ID_FORMAT),
            run_date=run_date,
            log_file=Path(config.log_dir) / run_date / f"{MONITOR_COMPONENT}.log",
            report_file=Path(config.monitor_output_dir) / run_date / f"monitor-{now.strftime('%H%M%S')}.txt",
            interactive=interactive,
        )
