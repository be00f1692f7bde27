"""Periodic /var monitoring: report, alerts and retention."""

from .alerts import AlertPublisher
from .lock import MonitorLock
from .metrics import MonitorMetrics
from .retention import age_in_days, cleanup_day_partitions, expired_day_partitions
from .runner import EXIT_ALREADY_RUNNING, EXIT_COMPLETED, MonitorOutcome, MonitorRunner, MonitorStatus
from .thresholds import Classification, alert_message, classify

__all__ = [
    "AlertPublisher",
    "Classification",
    "EXIT_ALREADY_RUNNING",
    "EXIT_COMPLETED",
    "MonitorLock",
    "MonitorMetrics",
    "MonitorOutcome",
    "MonitorRunner",
    "MonitorStatus",
    "age_in_days",
    "alert_message",
    "cleanup_day_partitions",
    "classify",
    "expired_day_partitions",
]
