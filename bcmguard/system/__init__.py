"""Host providers: read-only facts, mutating control, operator confirmation."""

from .confirmation import ConfirmationProvider, ConsoleConfirmation
from .host import HostSystemControl, HostSystemFacts
from .interfaces import (
    ActionResult,
    DiskUsage,
    ServiceState,
    SyslogPriority,
    SystemControl,
    SystemFacts,
)

__all__ = [
    "ActionResult",
    "ConfirmationProvider",
    "ConsoleConfirmation",
    "DiskUsage",
    "HostSystemControl",
    "HostSystemFacts",
    "ServiceState",
    "SyslogPriority",
    "SystemControl",
    "SystemFacts",
]
