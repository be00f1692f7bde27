"""
Alert delivery for the monitor.

WARNING and CRITICAL classifications are appended as one timestamped line to a
flat alerts file, which is never rotated or deleted, and emitted to the host
system log.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import structlog

from bcmguard.reporting import MONITOR_COMPONENT
from bcmguard.system import ActionResult, SyslogPriority, SystemControl

from .thresholds import Classification

logger = structlog.get_logger(__name__)

_PRIORITIES = {
    Classification.CRITICAL: SyslogPriority.CRITICAL,
    Classification.WARNING: SyslogPriority.WARNING,
}


class AlertPublisher:
    """
    Publishes classification alerts.

    Args:
        control: Used for the alerts file append and the system log
        alerts_path: Flat alerts file
        tag: System log tag
        clock: Time source for alert timestamps
    """

    def __init__(self, control: SystemControl, alerts_path: Path, tag: str = MONITOR_COMPONENT,
                 clock: Callable[[], datetime] = datetime.now):
        self.control = control
        self.alerts_path = Path(alerts_path)
        self.tag = tag
        self.clock = clock

    def format_line(self, message: str, now: Optional[datetime] = None) -> str:
        now = now or self.clock()
        return f"{now.strftime('%Y-%m-%d %H:%M:%S')} {message}"

    def record(self, message: str) -> ActionResult:
        """Append one line to the alerts file."""
        result = self.control.append_file(str(self.alerts_path), self.format_line(message) + "\n")
        if not result.ok:
            logger.warning("Failed to append alert", path=str(self.alerts_path), error=result.detail)
        return result

    def emit(self, classification: Classification, message: str) -> ActionResult:
        """Send the alert to the system log. OK is never emitted."""
        priority = _PRIORITIES.get(classification)
        if priority is None:
            return ActionResult.success("nothing to emit")
        result = self.control.emit_syslog(priority, self.tag, message)
        if not result.ok:
            logger.warning("Failed to emit syslog alert", priority=priority.value, error=result.detail)
        return result
