"""Unit tests for the run log and report writer."""

import io
import re
from datetime import datetime
from pathlib import Path

import pytest

from bcmguard.reporting import LogLevel, ReportClosedError, ReportSink, RunContext

NOW = datetime(2026, 10, 18, 9, 30, 15)


@pytest.fixture
def sink(tmp_path):
    sink = ReportSink(
        log_file=tmp_path / "logs" / "2026-10-18" / "bcm-log-monitor.log",
        report_file=tmp_path / "debug" / "2026-10-18" / "monitor-093015.txt",
        clock=lambda: NOW,
    )
    sink.open()
    return sink


class TestReportSink:

    def test_log_line_format(self, sink):
        sink.info("started")
        sink.success("done")
        sink.warn("careful")
        sink.error("broken")
        sink.critical("on fire")

        assert sink.log_file.read_text().splitlines() == [
            "[2026-10-18 09:30:15] [INFO] started",
            "[2026-10-18 09:30:15] [SUCCESS] done",
            "[2026-10-18 09:30:15] [WARN] careful",
            "[2026-10-18 09:30:15] [ERROR] broken",
            "[2026-10-18 09:30:15] [CRITICAL] on fire",
        ]

    def test_open_creates_day_directories(self, sink):
        assert sink.log_file.parent.is_dir()
        assert sink.report_file.parent.is_dir()

    def test_log_appends_across_sinks(self, sink):
        sink.info("first run")
        sink.close()

        again = ReportSink(log_file=sink.log_file, clock=lambda: NOW)
        again.open()
        again.log(LogLevel.INFO, "second run")

        assert len(sink.log_file.read_text().splitlines()) == 2

    def test_log_block_is_unprefixed(self, sink):
        sink.log_block("line one\nline two\n")
        sink.log_block("")

        assert sink.log_file.read_text() == "line one\nline two\n"

    def test_report_sections(self, sink):
        sink.section("Threshold Check")
        sink.emit("OK: /var is at 10% capacity")
        sink.emit_lines(["a", "b"])

        assert sink.report_file.read_text() == "=== Threshold Check ===\n\nOK: /var is at 10% capacity\na\nb\n"

    def test_writes_after_close_raise(self, sink):
        sink.close()

        assert sink.closed
        with pytest.raises(ReportClosedError):
            sink.info("late")
        with pytest.raises(ReportClosedError):
            sink.emit("late")

    def test_emit_without_report_file(self, tmp_path):
        sink = ReportSink(log_file=tmp_path / "run.log")

        with pytest.raises(ValueError):
            sink.emit("nowhere")

    def test_partial_report_survives_halt(self, sink):
        sink.section("Disk Usage")
        # Nothing is buffered: the file is readable before close().
        assert "Disk Usage" in sink.report_file.read_text()

    def test_unwritable_log_does_not_raise(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        sink = ReportSink(log_file=blocker / "run.log")

        sink.info("still running")
        sink.info("still running")

        assert sink._failed_paths == {blocker / "run.log"}

    def test_open_with_blocked_directory_does_not_raise(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        sink = ReportSink(
            log_file=tmp_path / "logs" / "run.log",
            report_file=blocker / "2026-10-18" / "monitor.txt",
            clock=lambda: NOW,
        )

        sink.open()
        sink.info("still running")
        sink.emit("report line")

        assert sink._failed_paths == {blocker / "2026-10-18" / "monitor.txt"}
        assert "still running" in (tmp_path / "logs" / "run.log").read_text()

    def test_echo_log(self, tmp_path):
        stream = io.StringIO()
        sink = ReportSink(log_file=tmp_path / "run.log", echo_log=True, stream=stream, clock=lambda: NOW)

        sink.warn("mirrored")

        assert stream.getvalue() == "[2026-10-18 09:30:15] [WARN] mirrored\n"


class TestForContext:

    def test_recovery_mirrors_log(self, config):
        context = RunContext.for_recovery(config, now=NOW, interactive=True)
        sink = ReportSink.for_context(context)

        assert sink.echo_log
        assert not sink.echo_report
        assert sink.report_file is None

    def test_monitor_mirrors_report(self, config):
        context = RunContext.for_monitor(config, now=NOW, interactive=True)
        sink = ReportSink.for_context(context)

        assert sink.echo_report
        assert not sink.echo_log
        assert sink.report_file.name == "monitor-093015.txt"

    def test_unattended_monitor_is_silent(self, config):
        context = RunContext.for_monitor(config, now=NOW, interactive=False)
        sink = ReportSink.for_context(context)

        assert not sink.echo_report
        assert not sink.echo_log


class TestRunContext:

    def test_recovery_paths(self, config):
        context = RunContext.for_recovery(config, now=NOW)

        assert context.run_id == "20261018_093015"
        assert context.run_date == "2026-10-18"
        assert context.log_file == Path(config.log_dir) / "2026-10-18" / "bcm-recovery.log"
        assert context.backup_dir == Path(config.backup_base_dir) / "20261018_093015"

    def test_monitor_paths(self, config):
        context = RunContext.for_monitor(config, now=NOW)

        assert context.log_file == Path(config.log_dir) / "2026-10-18" / "bcm-log-monitor.log"
        assert context.report_file == Path(config.monitor_output_dir) / "2026-10-18" / "monitor-093015.txt"
        assert context.backup_dir is None
        assert re.fullmatch(r"\d{8}_\d{6}", context.run_id)
