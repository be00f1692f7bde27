"""
Run log and report writer shared by recovery and monitoring.

Every line is appended and flushed on its own, so a run that halts part-way
leaves a readable log and report behind. The run log uses the format
``[YYYY-MM-DD HH:MM:SS] [LEVEL] message``.
"""

import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional, TextIO

import structlog

from .context import RunContext

logger = structlog.get_logger(__name__)


class LogLevel(Enum):
    """Levels used in the run log."""
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ReportClosedError(RuntimeError):
    """Raised when writing to a sink after close()."""


class ReportSink:
    """
    Append-only run log plus an optional per-run report file.

    Args:
        log_file: Day-partitioned log file, shared by runs of the same day
        report_file: Per-run report file (monitor only)
        echo_log: Mirror log lines to the console
        echo_report: Mirror report lines to the console
        stream: Console stream (defaults to stdout)
        clock: Time source for log timestamps
    """

    def __init__(self, log_file: Path, report_file: Optional[Path] = None,
                 echo_log: bool = False, echo_report: bool = False,
                 stream: Optional[TextIO] = None, clock: Callable[[], datetime] = datetime.now):
        self.log_file = Path(log_file)
        self.report_file = Path(report_file) if report_file else None
        self.echo_log = echo_log
        self.echo_report = echo_report
        self.stream = stream or sys.stdout
        self.clock = clock
        self._closed = False
        self._failed_paths = set()

    @classmethod
    def for_context(cls, context: RunContext, stream: Optional[TextIO] = None,
                    clock: Callable[[], datetime] = datetime.now) -> "ReportSink":
        """Recovery mirrors its log to the console; the monitor mirrors its report."""
        is_monitor = context.report_file is not None
        return cls(
            log_file=context.log_file,
            report_file=context.report_file,
            echo_log=context.interactive and not is_monitor,
            echo_report=context.interactive and is_monitor,
            stream=stream,
            clock=clock,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """
        Create the day directories for the log and report.

        A directory that cannot be created is logged once; later writes to
        that file fail quietly and the run itself carries on.
        """
        for path in (self.log_file, self.report_file):
            if path is None:
                continue
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self._failed_paths.add(path)
                logger.warning("Unable to create run output directory", path=str(path.parent), error=str(e))

    def close(self) -> None:
        self._closed = True

    # Run log

    def log(self, level: LogLevel, message: str) -> None:
        self._check_open()
        timestamp = self.clock().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{timestamp}] [{level.value}] {message}"
        self._append(self.log_file, [line])
        if self.echo_log:
            self._echo([line])

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def success(self, message: str) -> None:
        self.log(LogLevel.SUCCESS, message)

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARN, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def critical(self, message: str) -> None:
        self.log(LogLevel.CRITICAL, message)

    def log_block(self, text: str) -> None:
        """Copy raw command output into the run log without a prefix."""
        self._check_open()
        lines = text.rstrip("\n").splitlines()
        if not lines:
            return
        self._append(self.log_file, lines)
        if self.echo_log:
            self._echo(lines)

    # Report

    def emit(self, line: str = "") -> None:
        self.emit_lines([line])

    def emit_lines(self, lines: Iterable[str]) -> None:
        self._check_open()
        lines = list(lines)
        if self.report_file is None:
            raise ValueError("This sink has no report file")
        self._append(self.report_file, lines)
        if self.echo_report:
            self._echo(lines)

    def section(self, title: str) -> None:
        self.emit_lines([f"=== {title} ===", ""])

    # Internals

    def _check_open(self) -> None:
        if self._closed:
            raise ReportClosedError(f"Report sink for {self.log_file} is closed")

    def _append(self, path: Path, lines: Iterable[str]) -> None:
        try:
            with open(path, "a") as f:
                for line in lines:
                    f.write(line + "\n")
                f.flush()
        except OSError as e:
            if path not in self._failed_paths:
                self._failed_paths.add(path)
                logger.warning("Unable to write run output", path=str(path), error=str(e))

    def _echo(self, lines: Iterable[str]) -> None:
        for line in lines:
            print(line, file=self.stream)
        self.stream.flush()
