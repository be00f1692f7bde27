"""
Prometheus textfile export.

The monitor runs from cron and has no endpoint to scrape, so it writes its
gauges to a file picked up by the node-exporter textfile collector.
"""

from typing import Optional, Sequence, Tuple

import structlog
from prometheus_client import CollectorRegistry, Gauge, write_to_textfile

from .thresholds import Classification

logger = structlog.get_logger(__name__)


class MonitorMetrics:
    """Gauges describing the last monitor run."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.usage_gauge = Gauge(
            'bcmguard_disk_usage_percent',
            'Disk usage percentage of the monitored mount point',
            ['mount_point'],
            registry=self.registry,
        )
        self.classification_gauge = Gauge(
            'bcmguard_disk_classification',
            'Usage classification (0=OK, 1=WARNING, 2=CRITICAL)',
            ['mount_point'],
            registry=self.registry,
        )
        self.consumer_bytes_gauge = Gauge(
            'bcmguard_top_consumer_bytes',
            'Allocated size of the largest directories on the mount point',
            ['path'],
            registry=self.registry,
        )
        self.last_run_gauge = Gauge(
            'bcmguard_monitor_last_run_timestamp_seconds',
            'Unix time of the last completed monitor run',
            registry=self.registry,
        )

    def update(self, mount_point: str, usage_percent: int, classification: Classification,
               consumers: Sequence[Tuple[str, int]], timestamp: float) -> None:
        self.usage_gauge.labels(mount_point=mount_point).set(usage_percent)
        self.classification_gauge.labels(mount_point=mount_point).set(classification.level)
        for path, size in consumers:
            self.consumer_bytes_gauge.labels(path=path).set(size)
        self.last_run_gauge.set(timestamp)

    def write(self, path: str) -> bool:
        """Write the registry to a textfile. Returns False on failure."""
        try:
            write_to_textfile(path, self.registry)
        except OSError as e:
            logger.warning("Failed to write metrics textfile", path=path, error=str(e))
            return False
        return True
