"""
Unit tests for day-partition retention.

Directory ages are set with os.utime relative to a fixed reference time.
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from bcmguard.monitor import age_in_days, cleanup_day_partitions, expired_day_partitions

NOW = datetime(2026, 10, 18, 12, 0, 0)


class TestDayPartitionRetention(unittest.TestCase):
    """Only directories older than the policy are deleted."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir) / "debug"
        self.root.mkdir()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _day_dir(self, age_days, name=None):
        stamp = NOW - timedelta(days=age_days)
        path = self.root / (name or stamp.strftime("%Y-%m-%d"))
        path.mkdir()
        (path / "monitor-120000.txt").write_text("report\n")
        os.utime(path, (stamp.timestamp(), stamp.timestamp()))
        return path

    def test_only_expired_directory_deleted(self):
        kept = [self._day_dir(age) for age in (0, 5, 10)]
        expired = self._day_dir(31)

        deleted = cleanup_day_partitions(self.root, 30, NOW)

        self.assertEqual(deleted, [expired])
        self.assertFalse(expired.exists())
        for path in kept:
            self.assertTrue(path.exists())

    def test_exactly_at_policy_is_kept(self):
        boundary = self._day_dir(30)

        self.assertEqual(cleanup_day_partitions(self.root, 30, NOW), [])
        self.assertTrue(boundary.exists())

    def test_today_is_never_deleted(self):
        today = self._day_dir(400, name=NOW.strftime("%Y-%m-%d"))

        self.assertEqual(cleanup_day_partitions(self.root, 30, NOW), [])
        self.assertTrue(today.exists())

    def test_top_level_files_untouched(self):
        alerts = self.root / "ALERTS.log"
        alerts.write_text("2020-01-01 00:00:00 CRITICAL: /var is at 99% capacity (threshold: 90%)\n")
        old = (NOW - timedelta(days=365)).timestamp()
        os.utime(alerts, (old, old))

        cleanup_day_partitions(self.root, 30, NOW)

        self.assertTrue(alerts.exists())

    def test_zero_retention_keeps_today_only(self):
        self._day_dir(1)
        today = self._day_dir(0)

        deleted = cleanup_day_partitions(self.root, 0, NOW)

        self.assertEqual(len(deleted), 1)
        self.assertTrue(today.exists())

    def test_missing_root(self):
        self.assertEqual(cleanup_day_partitions(self.root / "missing", 30, NOW), [])

    def test_delete_failure_is_skipped(self):
        expired = self._day_dir(31)

        with patch("bcmguard.monitor.retention.shutil.rmtree", side_effect=PermissionError("denied")):
            deleted = cleanup_day_partitions(self.root, 30, NOW)

        self.assertEqual(deleted, [])
        self.assertTrue(expired.exists())

    def test_expired_listing_does_not_delete(self):
        expired = self._day_dir(45)

        self.assertEqual(expired_day_partitions(self.root, 30, NOW), [expired])
        self.assertTrue(expired.exists())

    def test_age_in_whole_days(self):
        self.assertEqual(age_in_days((NOW - timedelta(days=2, hours=23)).timestamp(), NOW), 2)
        self.assertEqual(age_in_days(NOW.timestamp(), NOW), 0)


if __name__ == '__main__':
    unittest.main()
