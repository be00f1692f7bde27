"""
One monitoring pass over the /var partition.

Each run writes a timestamped report (disk usage, largest directories, log
file sizes and recent activity, threshold check, cleanup summary), raises
alerts when usage crosses a threshold and applies retention to the report and
log areas. Only one run may be active at a time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Tuple

import structlog

from bcmguard.config import GuardConfig
from bcmguard.reporting import ReportSink, RunContext, disk_usage_lines, format_bytes
from bcmguard.system import SystemControl, SystemFacts

from .alerts import AlertPublisher
from .lock import MonitorLock
from .metrics import MonitorMetrics
from .retention import cleanup_day_partitions
from .thresholds import Classification, alert_message, classify

logger = structlog.get_logger(__name__)

EXIT_COMPLETED = 0
EXIT_ALREADY_RUNNING = 2


class MonitorStatus(Enum):
    COMPLETED = "completed"
    ALREADY_RUNNING = "already_running"


@dataclass(frozen=True)
class MonitorOutcome:
    """Result of a monitor run."""
    status: MonitorStatus
    classification: Optional[Classification] = None
    usage_percent: Optional[int] = None
    report_file: Optional[Path] = None
    deleted_dirs: Tuple[Path, ...] = field(default_factory=tuple)

    @property
    def exit_code(self) -> int:
        if self.status == MonitorStatus.ALREADY_RUNNING:
            return EXIT_ALREADY_RUNNING
        return EXIT_COMPLETED


class MonitorRunner:
    """
    Runs one monitoring pass.

    Args:
        config: Immutable configuration
        facts: Read-only host queries
        control: Mutating host actions (alerts file, system log)
        lock: Single-instance lock (defaults to one on config.lock_file)
        clock: Time source
        interactive: Mirror the report to the console
        metrics: Prometheus gauges, exported when config.metrics_textfile is set
        stream: Console stream for the mirrored report
    """

    def __init__(self, config: GuardConfig, facts: SystemFacts, control: SystemControl,
                 lock: Optional[MonitorLock] = None, clock: Callable[[], datetime] = datetime.now,
                 interactive: bool = False, metrics: Optional[MonitorMetrics] = None,
                 stream: Optional[TextIO] = None):
        self.config = config
        self.facts = facts
        self.control = control
        self.lock = lock or MonitorLock(config.lock_file)
        self.clock = clock
        self.interactive = interactive
        self.metrics = metrics
        self.stream = stream

    def run(self) -> MonitorOutcome:
        if not self.lock.acquire():
            logger.warning("Another monitor instance is running", lock_file=str(self.lock.lock_file))
            return MonitorOutcome(status=MonitorStatus.ALREADY_RUNNING)

        try:
            return self._run_locked()
        finally:
            self.lock.release()

    def _run_locked(self) -> MonitorOutcome:
        now = self.clock()
        context = RunContext.for_monitor(self.config, now=now, interactive=self.interactive)
        sink = ReportSink.for_context(context, stream=self.stream, clock=self.clock)
        sink.open()
        sink.info(f"Monitor run started, report: {context.report_file}")

        try:
            self._write_header(sink, now)
            usage = self._write_disk_usage(sink)
            consumers = self._write_top_consumers(sink)
            self._write_log_sizes(sink)
            self._write_recent_activity(sink)
            classification = self._check_thresholds(sink, usage)
            deleted = self._cleanup(sink, now)
            self._export_metrics(sink, usage, classification, consumers, now)

            sink.emit("=" * 60)
            sink.emit(f"Report completed at {self.clock().strftime('%Y-%m-%d %H:%M:%S')}")
            sink.emit("=" * 60)
            sink.info(f"Monitor run completed: {classification.value} ({usage}%)")
        finally:
            sink.close()

        return MonitorOutcome(
            status=MonitorStatus.COMPLETED,
            classification=classification,
            usage_percent=usage,
            report_file=context.report_file,
            deleted_dirs=tuple(deleted),
        )

    def _write_header(self, sink: ReportSink, now: datetime) -> None:
        sink.emit("=" * 60)
        sink.emit("BCM /var Log Monitor Report")
        sink.emit(f"Host: {self.facts.hostname()}")
        sink.emit(f"Time: {now.astimezone().strftime('%Y-%m-%d %H:%M:%S %Z')}")
        sink.emit("=" * 60)
        sink.emit()

    def _write_disk_usage(self, sink: ReportSink) -> int:
        mount = self.config.var_mount_point
        disk = self.facts.disk_usage(mount)
        sink.section(f"{mount} Disk Usage")
        sink.emit_lines(disk_usage_lines(disk))
        sink.emit()
        sink.emit(f"Current usage: {disk.percent}%")
        sink.emit()
        return disk.percent

    def _write_top_consumers(self, sink: ReportSink) -> List[Tuple[str, int]]:
        count = self.config.top_consumers_count
        mount = self.config.var_mount_point
        sink.section(f"Top {count} Disk Consumers in {mount}")
        consumers = sorted(self.facts.directory_sizes(mount), key=lambda item: item[1], reverse=True)[:count]
        if not consumers:
            sink.emit("(no directories found)")
        for path, size in consumers:
            sink.emit(f"{format_bytes(size):>8}  {path}")
        sink.emit()
        return consumers

    def _write_log_sizes(self, sink: ReportSink) -> None:
        sink.section("Log File Sizes")
        for path in self.config.monitored_logs:
            size = self.facts.file_size(path)
            if size is None:
                sink.emit(f"{path}: (not found)")
            else:
                sink.emit(f"{path}: {format_bytes(size)}")
        sink.emit()

    def _write_recent_activity(self, sink: ReportSink) -> None:
        sink.section(f"Recent Log Activity (last {self.config.tail_lines} lines)")
        for path in self.config.monitored_logs:
            sink.emit(f"--- {path} ---")
            if not self.facts.exists(path):
                sink.emit("(file not found)")
            else:
                lines = self.facts.tail_lines(path, self.config.tail_lines)
                if lines is None:
                    sink.emit("(unable to read)")
                else:
                    sink.emit_lines(lines)
            sink.emit()

    def _check_thresholds(self, sink: ReportSink, usage: int) -> Classification:
        config = self.config
        classification = classify(usage, config.warn_threshold, config.critical_threshold)
        message = alert_message(
            classification, config.var_mount_point, usage, config.warn_threshold, config.critical_threshold,
        )

        sink.section("Threshold Check")
        sink.emit(message)
        sink.emit()

        if classification == Classification.OK:
            sink.info(message)
            return classification

        if classification == Classification.CRITICAL:
            sink.critical(message)
        else:
            sink.warn(message)

        publisher = AlertPublisher(self.control, config.alerts_path, clock=self.clock)
        if not publisher.record(message).ok:
            sink.warn(f"Failed to append alert to {config.alerts_path}")
        emitted = publisher.emit(classification, message)
        if not emitted.ok:
            sink.warn(f"Failed to send alert to the system log: {emitted.detail}")
        return classification

    def _cleanup(self, sink: ReportSink, now: datetime) -> List[Path]:
        retention = self.config.retention_days
        sink.section("Report Cleanup")
        deleted: List[Path] = []
        for label, root in (("report", self.config.monitor_output_dir), ("log", self.config.log_dir)):
            removed = cleanup_day_partitions(Path(root), retention, now)
            sink.emit(f"Removed {len(removed)} {label} director{'y' if len(removed) == 1 else 'ies'} "
                      f"older than {retention} days from {root}")
            for path in removed:
                sink.info(f"Deleted expired {label} directory: {path}")
            deleted.extend(removed)
        sink.emit()
        return deleted

    def _export_metrics(self, sink: ReportSink, usage: int, classification: Classification,
                        consumers: List[Tuple[str, int]], now: datetime) -> None:
        target = self.config.metrics_textfile
        if not target:
            return
        metrics = self.metrics or MonitorMetrics()
        metrics.update(self.config.var_mount_point, usage, classification, consumers, now.timestamp())
        if not metrics.write(target):
            sink.warn(f"Failed to write metrics textfile {target}")
