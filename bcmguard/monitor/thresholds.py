"""Disk usage classification."""

from enum import Enum


class Classification(Enum):
    """Usage class of a monitored mount point, highest severity last."""
    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        return _LEVELS[self]


_LEVELS = {
    Classification.OK: 0,
    Classification.WARNING: 1,
    Classification.CRITICAL: 2,
}


def classify(percent: int, warn_threshold: int, critical_threshold: int) -> Classification:
    """
    Classify a usage percentage.

    Both thresholds are inclusive lower bounds.

    >>> classify(90, 80, 90)
    <Classification.CRITICAL: 'CRITICAL'>
    >>> classify(80, 80, 90)
    <Classification.WARNING: 'WARNING'>
    >>> classify(79, 80, 90)
    <Classification.OK: 'OK'>
    """
    if percent >= critical_threshold:
        return Classification.CRITICAL
    if percent >= warn_threshold:
        return Classification.WARNING
    return Classification.OK


def alert_message(classification: Classification, mount_point: str, percent: int,
                  warn_threshold: int, critical_threshold: int) -> str:
    """One-line description of a classification, used in reports and alerts."""
    if classification == Classification.CRITICAL:
        return f"CRITICAL: {mount_point} is at {percent}% capacity (threshold: {critical_threshold}%)"
    if classification == Classification.WARNING:
        return f"WARNING: {mount_point} is at {percent}% capacity (threshold: {warn_threshold}%)"
    return f"OK: {mount_point} is at {percent}% capacity"
