"""Run context, run log and report output."""

from .context import MONITOR_COMPONENT, RECOVERY_COMPONENT, RunContext
from .formatting import disk_usage_lines, format_bytes, format_duration
from .sink import LogLevel, ReportClosedError, ReportSink

__all__ = [
    "LogLevel",
    "MONITOR_COMPONENT",
    "RECOVERY_COMPONENT",
    "ReportClosedError",
    "ReportSink",
    "RunContext",
    "disk_usage_lines",
    "format_bytes",
    "format_duration",
]
