"""Unit tests for disk usage classification."""

import pytest

from bcmguard.monitor import Classification, alert_message, classify


class TestClassify:

    @pytest.mark.parametrize("percent,expected", [
        (0, Classification.OK),
        (79, Classification.OK),
        (80, Classification.WARNING),
        (89, Classification.WARNING),
        (90, Classification.CRITICAL),
        (100, Classification.CRITICAL),
    ])
    def test_boundaries(self, percent, expected):
        assert classify(percent, 80, 90) == expected

    def test_custom_thresholds(self):
        assert classify(50, 50, 51) == Classification.WARNING
        assert classify(51, 50, 51) == Classification.CRITICAL

    def test_levels_are_ordered(self):
        assert Classification.OK.level < Classification.WARNING.level < Classification.CRITICAL.level


class TestAlertMessage:

    def test_critical(self):
        message = alert_message(Classification.CRITICAL, "/var", 95, 80, 90)
        assert message == "CRITICAL: /var is at 95% capacity (threshold: 90%)"

    def test_warning(self):
        message = alert_message(Classification.WARNING, "/var", 85, 80, 90)
        assert message == "WARNING: /var is at 85% capacity (threshold: 80%)"

    def test_ok(self):
        assert alert_message(Classification.OK, "/var", 10, 80, 90) == "OK: /var is at 10% capacity"
