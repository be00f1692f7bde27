"""Unit tests for alert delivery."""

from datetime import datetime
from pathlib import Path

from bcmguard.monitor import AlertPublisher, Classification
from bcmguard.system import SyslogPriority
from tests.utils.fakes import FakeHost

NOW = datetime(2026, 10, 18, 11, 30, 0)
ALERTS = "/root/bcm-var-log-full/debug/ALERTS.log"


class TestAlertPublisher:

    def setup_method(self):
        self.host = FakeHost()
        self.publisher = AlertPublisher(self.host, Path(ALERTS), clock=lambda: NOW)

    def test_record_appends_timestamped_line(self):
        self.publisher.record("WARNING: /var is at 85% capacity (threshold: 80%)")
        self.publisher.record("CRITICAL: /var is at 91% capacity (threshold: 90%)")

        assert self.host.text(ALERTS).splitlines() == [
            "2026-10-18 11:30:00 WARNING: /var is at 85% capacity (threshold: 80%)",
            "2026-10-18 11:30:00 CRITICAL: /var is at 91% capacity (threshold: 90%)",
        ]

    def test_emit_priorities(self):
        self.publisher.emit(Classification.CRITICAL, "critical message")
        self.publisher.emit(Classification.WARNING, "warning message")

        assert self.host.syslog == [
            (SyslogPriority.CRITICAL, "bcm-log-monitor", "critical message"),
            (SyslogPriority.WARNING, "bcm-log-monitor", "warning message"),
        ]

    def test_ok_is_not_emitted(self):
        result = self.publisher.emit(Classification.OK, "OK: /var is at 10% capacity")

        assert result.ok
        assert self.host.syslog == []

    def test_failures_are_returned(self):
        self.host.fail("emit_syslog", detail="System log unavailable at /dev/log")
        self.host.fail("append_file", ALERTS)

        assert not self.publisher.emit(Classification.WARNING, "message").ok
        assert not self.publisher.record("message").ok
