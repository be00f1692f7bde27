"""Unit tests for the Prometheus textfile export."""

from prometheus_client import CollectorRegistry

from bcmguard.monitor import Classification, MonitorMetrics


class TestMonitorMetrics:

    def test_gauges_written_to_textfile(self, tmp_path):
        registry = CollectorRegistry()
        metrics = MonitorMetrics(registry)
        target = tmp_path / "bcmguard.prom"

        metrics.update("/var", 93, Classification.CRITICAL, [("/var/log", 1024), ("/var/lib", 512)], 1760000000.0)

        assert metrics.write(str(target))
        text = target.read_text()
        assert 'bcmguard_disk_usage_percent{mount_point="/var"} 93.0' in text
        assert 'bcmguard_disk_classification{mount_point="/var"} 2.0' in text
        assert 'bcmguard_top_consumer_bytes{path="/var/log"} 1024.0' in text
        assert "bcmguard_monitor_last_run_timestamp_seconds " in text
        assert registry.get_sample_value("bcmguard_monitor_last_run_timestamp_seconds") == 1760000000.0

    def test_registry_values(self):
        registry = CollectorRegistry()
        metrics = MonitorMetrics(registry)

        metrics.update("/var", 10, Classification.OK, [], 0.0)

        assert registry.get_sample_value("bcmguard_disk_usage_percent", {"mount_point": "/var"}) == 10.0
        assert registry.get_sample_value("bcmguard_disk_classification", {"mount_point": "/var"}) == 0.0

    def test_write_failure(self, tmp_path):
        metrics = MonitorMetrics()

        assert not metrics.write(str(tmp_path / "missing" / "dir" / "bcmguard.prom"))
