"""Unit tests for the command-line entry points."""

import io

import pytest
import yaml

from bcmguard.cli import monitor_cli, recovery_cli
from bcmguard.monitor import MonitorLock
from tests.utils.fakes import ScriptedConfirmation, healthy_host


@pytest.fixture
def config_file(tmp_path, config):
    path = tmp_path / "bcmguard.yaml"
    path.write_text(yaml.safe_dump({
        "log_dir": config.log_dir,
        "monitor_output_dir": config.monitor_output_dir,
        "lock_file": config.lock_file,
        "service_restart_delay": 0,
        "settle_seconds": 0,
    }))
    return path


@pytest.fixture
def fake_host(config, monkeypatch):
    host = healthy_host(config)
    for module in (recovery_cli, monitor_cli):
        monkeypatch.setattr(module, "HostSystemFacts", lambda: host)
        monkeypatch.setattr(module, "HostSystemControl", lambda: host)
    monkeypatch.setattr(recovery_cli, "ConsoleConfirmation", lambda: ScriptedConfirmation())
    return host


class TestRecoveryCli:

    def test_config_error(self, tmp_path, capsys):
        assert recovery_cli.main([str(tmp_path / "missing.yaml")]) == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_success(self, config_file, fake_host, capsys):
        assert recovery_cli.main([str(config_file)]) == 0
        out = capsys.readouterr().out
        assert "Recovery completed successfully." in out
        assert "Log file:" in out

    def test_fatal(self, config_file, fake_host, capsys):
        fake_host.privileged = False

        assert recovery_cli.main([str(config_file)]) == 1
        assert "Recovery FAILED in phase 'Pre-flight'" in capsys.readouterr().out

    def test_abort(self, config_file, fake_host, capsys):
        fake_host.set_usage("/var", 20)

        assert recovery_cli.main([str(config_file)]) == 2
        assert "aborted by operator" in capsys.readouterr().out

    def test_unattended_run_still_mirrors_log(self, config_file, fake_host, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO())

        assert recovery_cli.main([str(config_file)]) == 0
        captured = capsys.readouterr()
        assert "confirmation prompts will be declined" in captured.err
        assert "[INFO] Recovery v" in captured.out

    def test_skip_backup_flag(self, config_file, fake_host):
        assert recovery_cli.main(["--skip-backup", str(config_file)]) == 0
        assert not [call for call in fake_host.called("copy_file") if call[1] == "/var/log/messages"]


class TestMonitorCli:

    def test_config_error(self, tmp_path):
        assert monitor_cli.main([str(tmp_path / "missing.yaml")]) == 1

    def test_completed_regardless_of_classification(self, config_file, fake_host):
        fake_host.set_usage("/var", 99)

        assert monitor_cli.main([str(config_file)]) == 0

    def test_already_running(self, config_file, config, fake_host, capsys):
        holder = MonitorLock(config.lock_file)
        assert holder.acquire()
        try:
            assert monitor_cli.main([str(config_file)]) == 2
        finally:
            holder.release()
        assert "Another bcm-log-monitor instance is running" in capsys.readouterr().err
