"""Shared fixtures."""

import pytest

from bcmguard.config import GuardConfig
from tests.utils.fakes import ScriptedConfirmation, healthy_host


@pytest.fixture
def config(tmp_path):
    """Configuration whose output areas live under tmp_path."""
    return GuardConfig(
        backup_base_dir="/root/bcm-var-log-full/backups",
        log_dir=str(tmp_path / "logs"),
        monitor_output_dir=str(tmp_path / "debug"),
        lock_file=str(tmp_path / "lock" / "bcm-log-monitor.lock"),
        service_restart_delay=0,
        settle_seconds=0,
    )


@pytest.fixture
def host(config):
    return healthy_host(config)


@pytest.fixture
def confirm():
    return ScriptedConfirmation()
