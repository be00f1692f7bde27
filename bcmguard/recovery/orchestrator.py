"""
Recovery orchestrator for a head node whose /var partition filled up.

The workflow runs four phases in a fixed order:

- Pre-flight: privileges, required commands, disk usage, service states,
  backup destination
- Backup & Reclaim: copy the oversized syslog aside, truncate it, check space
- Service Restoration: logger, mail queue, control daemon spool, control
  daemon (bounded retry), control shell reachability
- Preventive Configuration: size-bounded log rotation (validated, with
  rollback) and logger rate limiting

Every phase and every step returns a PhaseResult. The driver stops at the
first result that is not OK; no later phase runs.
"""

import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import structlog

from bcmguard import __version__
from bcmguard.config import GuardConfig
from bcmguard.reporting import ReportSink, RunContext, disk_usage_lines, format_bytes, format_duration
from bcmguard.system import ConfirmationProvider, ServiceState, SystemControl, SystemFacts

from .models import (
    BackupRecord,
    BackupStatus,
    OutcomeStatus,
    Phase,
    PhaseResult,
    PhaseStatus,
    RunOutcome,
)
from .restart import BoundedRestart
from .rsyslog import rate_limit_addition

logger = structlog.get_logger(__name__)

TOOL_NAME = "bcm-recovery"
SYSLOG_BACKUP_NAME = "syslog.incident-backup"

Step = Callable[[], PhaseResult]


class RecoveryOrchestrator:
    """
    Runs the phased recovery workflow once.

    Args:
        config: Immutable configuration
        facts: Read-only host queries
        control: Mutating host actions
        confirm: Operator confirmation provider
        context: Run context for this invocation
        sink: Run log
        sleep: Sleep function (injected by tests)
        clock: Time source
        config_path: Path the configuration was loaded from, for the log
    """

    def __init__(self, config: GuardConfig, facts: SystemFacts, control: SystemControl,
                 confirm: ConfirmationProvider, context: RunContext, sink: ReportSink,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], datetime] = datetime.now,
                 config_path: Optional[str] = None):
        self.config = config
        self.facts = facts
        self.control = control
        self.confirm = confirm
        self.context = context
        self.sink = sink
        self.sleep = sleep
        self.clock = clock
        self.config_path = config_path

        self.backup_dir = context.backup_dir
        self._skip_backup = False
        self._records: List[BackupRecord] = []

    def run(self, skip_backup: bool = False) -> RunOutcome:
        """
        Execute all phases in order.

        Args:
            skip_backup: Truncate the oversized file without copying it first

        Returns:
            RunOutcome describing success, operator abort or the fatal halt
        """
        self._skip_backup = skip_backup
        self._records = []
        started = time.monotonic()

        self.sink.open()
        self.sink.info(f"Recovery v{__version__} started at {self.context.started_at:%Y-%m-%d %H:%M:%S}")
        self.sink.info(f"Configuration: {self.config_path or '(defaults)'}")
        self.sink.info(f"Log file: {self.context.log_file}")
        self.sink.info(f"Backup directory: {self.backup_dir}")
        if skip_backup:
            self.sink.warn("--skip-backup set: the syslog file will be truncated without a data backup")

        phases: List[Tuple[Phase, Step]] = [
            (Phase.PREFLIGHT, self._preflight),
            (Phase.BACKUP_AND_RECLAIM, self._backup_and_reclaim),
            (Phase.SERVICE_RESTORATION, self._service_restoration),
            (Phase.PREVENTIVE_CONFIG, self._preventive_config),
        ]

        completed: List[Phase] = []
        for phase, run_phase in phases:
            self._banner(phase.value.upper())
            result = run_phase()
            if not result.is_ok:
                return self._halt(phase, result, completed, time.monotonic() - started)
            completed.append(phase)
            self.sink.success(f"{phase.value} completed")

        duration = time.monotonic() - started
        self._banner("RECOVERY COMPLETED SUCCESSFULLY", success=True)
        self.sink.info(f"Total time: {format_duration(duration)}")
        self.sink.info(f"Backups: {self.backup_dir}")
        self.sink.info(f"Log: {self.context.log_file}")
        self.sink.close()
        return RunOutcome(
            status=OutcomeStatus.SUCCESS,
            log_file=self.context.log_file,
            backup_dir=self.backup_dir,
            completed_phases=tuple(completed),
            backup_records=tuple(self._records),
            duration_seconds=duration,
        )

    # Driver helpers

    def _run_steps(self, steps: Sequence[Step]) -> PhaseResult:
        for step in steps:
            result = step()
            if not result.is_ok:
                return result
        return PhaseResult.ok()

    def _halt(self, phase: Phase, result: PhaseResult, completed: List[Phase],
              duration: float) -> RunOutcome:
        if result.status == PhaseStatus.ABORT:
            self.sink.warn(f"Recovery aborted by operator during {phase.value}: {result.reason}")
            self.sink.warn(f"Review log file: {self.context.log_file}")
            status = OutcomeStatus.ABORTED
        else:
            self.sink.error(f"FATAL: {result.reason}")
            self.sink.error(f"Recovery ABORTED in phase '{phase.value}'. No further steps executed.")
            self.sink.error(f"Review log file: {self.context.log_file}")
            status = OutcomeStatus.FATAL
        logger.info("Recovery halted", phase=phase.value, status=status.value, reason=result.reason)
        self.sink.close()
        return RunOutcome(
            status=status,
            log_file=self.context.log_file,
            backup_dir=self.backup_dir,
            completed_phases=tuple(completed),
            backup_records=tuple(self._records),
            phase=phase,
            reason=result.reason,
            duration_seconds=duration,
        )

    def _banner(self, title: str, success: bool = False) -> None:
        write = self.sink.success if success else self.sink.info
        write("=" * 40)
        write(f"  {title}")
        write("=" * 40)

    def _log_disk_usage(self) -> int:
        usage = self.facts.disk_usage(self.config.var_mount_point)
        self.sink.log_block("\n".join(disk_usage_lines(usage)))
        return usage.percent

    def _ask(self, prompt: str) -> bool:
        answer = self.confirm.confirm(prompt, default=False)
        self.sink.info(f"Operator answered {'yes' if answer else 'no'} to: {prompt}")
        return answer

    # Pre-flight

    def _preflight(self) -> PhaseResult:
        return self._run_steps([
            self._check_privileges,
            self._check_commands,
            self._check_disk,
            self._check_services,
            self._check_backup_destination,
        ])

    def _check_privileges(self) -> PhaseResult:
        self.sink.info("Checking root privileges...")
        if not self.facts.is_privileged():
            return PhaseResult.fatal(f"This tool must be run as root. Use: sudo {TOOL_NAME}")
        self.sink.success("Running as root")
        return PhaseResult.ok()

    def _check_commands(self) -> PhaseResult:
        self.sink.info("Checking required commands...")
        for command in self.config.all_required_commands:
            if not self.facts.has_command(command):
                return PhaseResult.fatal(f"Required command not found: {command}")
        self.sink.success("All required commands available")
        return PhaseResult.ok()

    def _check_disk(self) -> PhaseResult:
        mount = self.config.var_mount_point
        self.sink.info(f"Checking {mount} disk usage...")
        usage = self._log_disk_usage()
        self.sink.info(f"{mount} is at {usage}% capacity")

        if usage < self.config.warn_threshold:
            self.sink.warn(
                f"{mount} usage ({usage}%) is below the warning threshold ({self.config.warn_threshold}%)."
            )
            self.sink.warn("Recovery may not be needed.")
            if not self._ask("Continue anyway?"):
                return PhaseResult.abort(f"{mount} usage is {usage}%, below the warning threshold")
        return PhaseResult.ok()

    def _check_services(self) -> PhaseResult:
        self.sink.info("Checking current service status...")
        for service in self.config.dependent_services:
            state = self.facts.service_state(service)
            if state == ServiceState.ACTIVE:
                self.sink.info(f"  {service}: active")
            elif state == ServiceState.FAILED:
                self.sink.warn(f"  {service}: failed")
            else:
                self.sink.warn(f"  {service}: inactive / not found")
        return PhaseResult.ok()

    def _check_backup_destination(self) -> PhaseResult:
        if self._skip_backup:
            self.sink.info("Skipping backup destination check (--skip-backup)")
        else:
            self.sink.info("Checking backup destination...")
            parent = str(Path(self.config.backup_base_dir).parent)
            if not self.facts.is_dir(parent):
                return PhaseResult.fatal(f"Parent directory of backup_base_dir does not exist: {parent}")

            available = self.facts.free_bytes(parent)
            required = self.config.required_free_space_bytes
            self.sink.info(f"Available space on backup partition: {format_bytes(available)}")
            if available < required:
                return PhaseResult.fatal(
                    f"Insufficient space for syslog backup. Need {format_bytes(required)}, "
                    f"have {format_bytes(available)}."
                )

        # Config backups in the last phase need this directory even when skipping.
        result = self.control.make_directory(str(self.backup_dir))
        if not result.ok:
            return PhaseResult.fatal(result.detail)
        self.sink.success(f"Backup directory created: {self.backup_dir}")
        return PhaseResult.ok()

    # Backup & Reclaim

    def _backup_and_reclaim(self) -> PhaseResult:
        return self._run_steps([
            self._backup_syslog,
            self._truncate_syslog,
            self._verify_space,
        ])

    def _backup_syslog(self) -> PhaseResult:
        source = self.config.syslog_file
        if self._skip_backup:
            self.sink.warn("Syslog backup SKIPPED (--skip-backup flag set)")
            self.sink.warn("The syslog file will be truncated without a backup")
            self._records.append(BackupRecord(
                source=source,
                destination=None,
                status=BackupStatus.SKIPPED,
                size_before=self.facts.file_size(source),
                created_at=self.clock(),
            ))
            return PhaseResult.ok()

        size_before = self.facts.file_size(source)
        if size_before is None:
            return PhaseResult.fatal(f"Syslog file not found: {source}")

        destination = str(self.backup_dir / SYSLOG_BACKUP_NAME)
        self.sink.info(f"Backing up syslog - {format_bytes(size_before)} to copy, this may take a long time...")
        self.sink.info(f"  Source: {source}")
        self.sink.info(f"  Destination: {destination}")
        self.sink.info("  Note: the logger is still writing; the backup may be slightly larger than the source")

        copy_started = time.monotonic()
        result = self.control.copy_file(source, destination)
        copy_duration = format_duration(time.monotonic() - copy_started)

        if not result.ok:
            self.sink.error(f"Syslog backup failed after {copy_duration}: {result.detail}")
            self.sink.warn("You can skip the backup and proceed directly to truncation.")
            self.sink.warn("The syslog data will be PERMANENTLY LOST if you continue without a backup.")
            proceed = self._ask("Continue without backup?")
            self._records.append(BackupRecord(
                source=source,
                destination=destination,
                status=BackupStatus.COPY_FAILED,
                size_before=size_before,
                size_after=self.facts.file_size(destination),
                operator_override=proceed,
                created_at=self.clock(),
            ))
            if not proceed:
                return PhaseResult.abort("Backup failed and the operator chose to abort")
            self.sink.warn("Operator chose to continue without backup")
            return PhaseResult.ok()

        self.sink.info(f"Copy completed in {copy_duration}")
        return self._verify_syslog_backup(source, destination, size_before)

    def _verify_syslog_backup(self, source: str, destination: str, size_before: int) -> PhaseResult:
        # The source keeps growing during the copy, so only a smaller copy is a failure.
        size_after = self.facts.file_size(destination)
        if size_after is None:
            self.sink.error(f"Backup verification failed: file not found at {destination}")
            status = BackupStatus.NOT_FOUND
        elif size_after < size_before:
            self.sink.error(
                f"Backup may be incomplete: expected at least {size_before} bytes, got {size_after} bytes"
            )
            status = BackupStatus.SIZE_MISMATCH
        else:
            self._records.append(BackupRecord(
                source=source,
                destination=destination,
                status=BackupStatus.VERIFIED,
                size_before=size_before,
                size_after=size_after,
                created_at=self.clock(),
            ))
            self.sink.success(f"Syslog backed up and verified: {destination} ({format_bytes(size_after)})")
            return PhaseResult.ok()

        self.sink.warn("Backup verification failed. You can still proceed with truncation.")
        self.sink.warn(f"A partial backup may exist at: {destination}")
        proceed = self._ask("Continue despite backup verification failure?")
        self._records.append(BackupRecord(
            source=source,
            destination=destination,
            status=status,
            size_before=size_before,
            size_after=size_after,
            operator_override=proceed,
            created_at=self.clock(),
        ))
        if not proceed:
            return PhaseResult.abort("Backup verification failed and the operator chose to abort")
        self.sink.warn("Operator chose to continue despite backup verification failure")
        return PhaseResult.ok()

    def _truncate_syslog(self) -> PhaseResult:
        path = self.config.syslog_file
        self.sink.info("Truncating syslog file...")
        result = self.control.truncate_file(path)
        if not result.ok:
            return PhaseResult.fatal(f"Failed to truncate {path}: {result.detail}")

        new_size = self.facts.file_size(path)
        if new_size != 0:
            return PhaseResult.fatal(f"Truncation verification failed: size is {new_size} bytes (expected 0)")
        self.sink.success("Syslog truncated to 0 bytes")
        return PhaseResult.ok()

    def _verify_space(self) -> PhaseResult:
        mount = self.config.var_mount_point
        self.sink.info("Verifying disk space recovery...")
        self.sleep(self.config.settle_seconds)
        usage = self._log_disk_usage()
        self.sink.info(f"{mount} is now at {usage}%")
        if usage >= self.config.warn_threshold:
            self.sink.warn(f"{mount} usage is still at {usage}%. Additional cleanup may be needed.")
        else:
            self.sink.success("Disk space recovered successfully")
        return PhaseResult.ok()

    # Service Restoration

    def _service_restoration(self) -> PhaseResult:
        return self._run_steps([
            self._restart_logger,
            self._flush_mail_queue,
            self._clean_control_spool,
            self._restart_control_daemon,
            self._verify_control_shell,
        ])

    def _restart_logger(self, reason: str = "") -> PhaseResult:
        service = self.config.rsyslog_service
        self.sink.info(f"Restarting {service}{reason}...")
        result = self.control.restart_service(service)
        if not result.ok:
            return PhaseResult.fatal(f"Failed to restart {service}{reason}: {result.detail}")

        self.sleep(self.config.settle_seconds)
        if not self.facts.is_service_active(service):
            return PhaseResult.fatal(
                f"{service} is not active after restart{reason}. Check: journalctl -u {service} -n 50"
            )
        self.sink.success(f"{service} restarted and active")
        self.sink.log_block(self.facts.service_status_text(service))
        return PhaseResult.ok()

    def _flush_mail_queue(self) -> PhaseResult:
        self.sink.info("Flushing Postfix mail queue...")
        result = self.control.flush_mail_queue()
        if result.output:
            self.sink.log_block(result.output)
        if result.ok:
            self.sink.success("Postfix queue flushed")
        else:
            self.sink.warn(f"Mail queue flush failed (non-critical, {self.config.postfix_service} "
                           f"may not be running): {result.detail}")
        return PhaseResult.ok()

    def _clean_control_spool(self) -> PhaseResult:
        spool = self.config.cmdaemon_spool
        self.sink.info("Cleaning CMDaemon spool directory...")
        if not self.facts.is_dir(spool):
            self.sink.info(f"Spool directory does not exist: {spool}")
            return PhaseResult.ok()

        stale = self.facts.list_matching(spool, self.config.spool_pattern)
        if not stale:
            self.sink.info("No stale spool files found")
            return PhaseResult.ok()

        result = self.control.remove_files(stale)
        if result.ok:
            self.sink.success(f"Removed {len(stale)} stale spool file(s) from {spool}")
        else:
            self.sink.warn(f"Could not remove all stale spool files: {result.detail}")
        return PhaseResult.ok()

    def _restart_control_daemon(self) -> PhaseResult:
        service = self.config.cmd_service
        self.sink.info(f"Restarting CMDaemon ({service})...")
        report = BoundedRestart(
            facts=self.facts,
            control=self.control,
            sink=self.sink,
            max_attempts=self.config.max_service_restart_retries,
            timeout=self.config.service_restart_timeout,
            delay=self.config.service_restart_delay,
            sleep=self.sleep,
        ).run(service)

        if not report.active:
            return PhaseResult.fatal(
                f"CMDaemon failed to start after {report.attempts} attempts "
                f"(timeout: {self.config.service_restart_timeout:g}s each). "
                f"Check: journalctl -u {service} -n 50"
            )
        self.sink.success("CMDaemon is active")
        self.sink.log_block(self.facts.service_status_text(service))
        return PhaseResult.ok()

    def _verify_control_shell(self) -> PhaseResult:
        self.sink.info("Verifying cmsh access...")
        argv = [self.config.cmsh_command, "-c", self.config.cmsh_test_command]
        result = self.control.run_diagnostic(argv, timeout=self.config.cmsh_timeout)
        if not result.ok:
            if result.output:
                self.sink.log_block(result.output)
            return PhaseResult.fatal(
                f"cmsh verification failed ({result.detail}). "
                f"Check: journalctl -u {self.config.cmd_service} -n 50"
            )
        self.sink.success("cmsh is accessible and responding")
        self.sink.info("Cluster status:")
        self.sink.log_block(result.output)
        return PhaseResult.ok()

    # Preventive Configuration

    def _preventive_config(self) -> PhaseResult:
        return self._run_steps([
            lambda: self._backup_config(self.config.logrotate_rsyslog_conf, "Logrotate config"),
            self._write_logrotate,
            self._validate_logrotate,
            lambda: self._backup_config(self.config.rsyslog_conf, "rsyslog.conf"),
            self._add_rate_limiting,
            lambda: self._restart_logger(" to apply new configuration"),
        ])

    def config_backup_path(self, live_path: str) -> Path:
        return self.backup_dir / f"{Path(live_path).name}{self.config.config_backup_suffix}"

    def _backup_config(self, source: str, label: str) -> PhaseResult:
        destination = str(self.config_backup_path(source))
        self.sink.info(f"Backing up {label}...")
        size_before = self.facts.file_size(source)
        if size_before is None:
            self._records.append(BackupRecord(
                source=source, destination=None, status=BackupStatus.NOT_FOUND, created_at=self.clock(),
            ))
            return PhaseResult.fatal(f"{label} not found: {source}")

        result = self.control.copy_file(source, destination)
        size_after = self.facts.file_size(destination) if result.ok else None
        if not result.ok or size_after != size_before:
            self._records.append(BackupRecord(
                source=source,
                destination=destination,
                status=BackupStatus.COPY_FAILED if not result.ok else BackupStatus.SIZE_MISMATCH,
                size_before=size_before,
                size_after=size_after,
                created_at=self.clock(),
            ))
            return PhaseResult.fatal(f"Failed to backup {label} to {destination}: {result.detail or 'size mismatch'}")

        self._records.append(BackupRecord(
            source=source,
            destination=destination,
            status=BackupStatus.VERIFIED,
            size_before=size_before,
            size_after=size_after,
            created_at=self.clock(),
        ))
        self.sink.success(f"{label} backed up: {destination}")
        return PhaseResult.ok()

    def _write_logrotate(self) -> PhaseResult:
        path = self.config.logrotate_rsyslog_conf
        self.sink.info("Writing new logrotate configuration...")
        content = self.config.logrotate_config
        if not content.endswith("\n"):
            content += "\n"
        result = self.control.write_file(path, content)
        if not result.ok:
            return PhaseResult.fatal(f"Failed to write new logrotate config to {path}: {result.detail}")
        self.sink.success(f"New logrotate config written to {path}")
        self.sink.info("Key changes: rotation is daily and size-bounded (maxsize)")
        return PhaseResult.ok()

    def _validate_logrotate(self) -> PhaseResult:
        path = self.config.logrotate_rsyslog_conf
        self.sink.info("Validating logrotate configuration (dry-run)...")
        result = self.control.validate_rotation_config(path)
        if result.output:
            self.sink.log_block(result.output)
        if result.ok:
            self.sink.success("Logrotate dry-run passed")
            return PhaseResult.ok()

        self.sink.error("Logrotate dry-run FAILED - restoring original config")
        backup = str(self.config_backup_path(path))
        restore = self.control.copy_file(backup, path)
        if not restore.ok:
            return PhaseResult.fatal(
                f"Logrotate validation failed and restoring the original config FAILED: {restore.detail}. "
                f"Restore it manually from {backup}"
            )
        self.sink.info(f"Original config restored from {backup}")
        return PhaseResult.fatal("Logrotate validation failed. Original config has been restored.")

    def _add_rate_limiting(self) -> PhaseResult:
        path = self.config.rsyslog_conf
        self.sink.info("Adding rsyslog rate limiting...")
        current = self.facts.read_text(path)
        if current is None:
            return PhaseResult.fatal(f"Unable to read {path}")
        block = rate_limit_addition(
            current, self.config.rate_limit_interval, self.config.rate_limit_burst, TOOL_NAME, self.clock(),
        )
        if block is None:
            self.sink.warn(f"Rate limiting already present in {path} - skipping")
            return PhaseResult.ok()

        result = self.control.append_file(path, block)
        if not result.ok:
            return PhaseResult.fatal(f"Failed to append rate limiting to {path}: {result.detail}")
        self.sink.success(
            f"Rate limiting added: {self.config.rate_limit_burst} msgs per {self.config.rate_limit_interval}s"
        )
        return PhaseResult.ok()
