"""
bcmguard - head node disk recovery and log monitoring.

This package contains the one-shot recovery orchestrator used to bring a head
node back after /var exhaustion, and the periodic monitor that watches /var
usage and keeps day-partitioned reports.
"""

__version__ = "1.0.0"
