"""
Configuration loader for bcmguard.

Both the recovery orchestrator and the monitor read one YAML file at startup.
The file is validated into an immutable GuardConfig which is then passed to
every component explicitly. Scalar options can be overridden through
BCMGUARD_<OPTION> environment variables (a .env file is honoured).
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

ENV_PREFIX = "BCMGUARD_"
CONFIG_ENV_VAR = "BCMGUARD_CONFIG"
DEFAULT_CONFIG_PATH = Path("configs/bcmguard.yaml")

GIB = 1024 ** 3

DEFAULT_LOGROTATE_CONFIG = """\
/var/log/messages
{
    daily
    maxsize 5G
    rotate 7
    missingok
    notifempty
    compress
    delaycompress
    sharedscripts
    postrotate
        /usr/bin/systemctl kill -s HUP rsyslog.service >/dev/null 2>&1 || true
    endscript
}

/var/log/cron
/var/log/maillog
/var/log/secure
/var/log/spooler
{
    daily
    maxsize 500M
    rotate 7
    missingok
    notifempty
    compress
    delaycompress
    sharedscripts
    postrotate
        /usr/bin/systemctl kill -s HUP rsyslog.service >/dev/null 2>&1 || true
    endscript
}
"""


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


class GuardConfig(BaseModel):
    """Immutable configuration shared by recovery and monitoring."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Partition and oversized file
    var_mount_point: str = "/var"
    syslog_file: str = "/var/log/messages"

    # Backups
    backup_base_dir: str = "/root/bcm-var-log-full/backups"
    required_free_space_bytes: int = 50 * GIB
    config_backup_suffix: str = ".pre-recovery"

    # Thresholds (percent full)
    warn_threshold: int = 80
    critical_threshold: int = 90

    # Output areas
    log_dir: str = "/root/bcm-var-log-full/logs"
    monitor_output_dir: str = "/root/bcm-var-log-full/debug"
    alerts_file: Optional[str] = None

    # Services
    rsyslog_service: str = "rsyslog"
    cmd_service: str = "cmd"
    postfix_service: str = "postfix"
    cmdaemon_spool: str = "/cm/local/apps/cmd/var/spool"
    spool_pattern: str = "cmd.output.*"

    # Control plane check
    cmsh_command: str = "cmsh"
    cmsh_test_command: str = "device; status"
    cmsh_timeout: float = 60.0

    # Bounded restart
    max_service_restart_retries: int = 3
    service_restart_timeout: float = 120.0
    service_restart_delay: float = 10.0
    settle_seconds: float = 2.0

    # Preventive configuration
    logrotate_rsyslog_conf: str = "/etc/logrotate.d/syslog"
    rsyslog_conf: str = "/etc/rsyslog.conf"
    logrotate_config: str = DEFAULT_LOGROTATE_CONFIG
    rate_limit_interval: int = 5
    rate_limit_burst: int = 500

    # Monitoring
    retention_days: int = 30
    top_consumers_count: int = 10
    tail_lines: int = 20
    monitored_logs: List[str] = [
        "/var/log/messages",
        "/var/log/cmdaemon",
        "/var/log/maillog",
        "/var/log/secure",
    ]
    lock_file: str = "/var/lock/bcm-log-monitor.lock"
    metrics_textfile: Optional[str] = None

    required_commands: List[str] = ["systemctl", "logrotate", "postsuper"]

    @field_validator("warn_threshold", "critical_threshold")
    @classmethod
    def _check_percentage(cls, value: int) -> int:
        if not 1 <= value <= 100:
            raise ValueError("threshold must be between 1 and 100")
        return value

    @field_validator(
        "max_service_restart_retries",
        "top_consumers_count",
        "tail_lines",
        "rate_limit_interval",
        "rate_limit_burst",
    )
    @classmethod
    def _check_positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("service_restart_timeout", "cmsh_timeout")
    @classmethod
    def _check_positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value

    @field_validator("retention_days", "required_free_space_bytes", "service_restart_delay", "settle_seconds")
    @classmethod
    def _check_non_negative(cls, value):
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "GuardConfig":
        if self.warn_threshold >= self.critical_threshold:
            raise ValueError(
                f"warn_threshold ({self.warn_threshold}) must be lower than "
                f"critical_threshold ({self.critical_threshold})"
            )
        return self

    @property
    def alerts_path(self) -> Path:
        """Flat, never-rotated alerts file."""
        if self.alerts_file:
            return Path(self.alerts_file)
        return Path(self.monitor_output_dir) / "ALERTS.log"

    @property
    def all_required_commands(self) -> List[str]:
        """Commands that must be on PATH before recovery starts."""
        commands = list(self.required_commands)
        if self.cmsh_command not in commands:
            commands.append(self.cmsh_command)
        return commands

    @property
    def dependent_services(self) -> List[str]:
        return [self.rsyslog_service, self.cmd_service, self.postfix_service]


def resolve_config_path(explicit: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Path:
    """Pick the configuration path: CLI argument, then environment, then default."""
    if explicit:
        return Path(explicit)
    if environ is None:
        environ = dict(os.environ)
    from_env = environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


def _env_overrides(environ: Dict[str, str]) -> Dict[str, Any]:
    """Collect BCMGUARD_<OPTION> overrides for scalar options."""
    overrides = {}
    for name, field in GuardConfig.model_fields.items():
        if field.annotation in (List[str],):
            continue
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is not None:
            overrides[name] = value
    return overrides


def load_config(config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> GuardConfig:
    """
    Load and validate the configuration.

    Args:
        config_path: Optional explicit path to the YAML file
        environ: Environment mapping used for overrides (defaults to os.environ)

    Returns:
        Validated, immutable GuardConfig

    Raises:
        ConfigError: if the file is missing, unreadable or invalid
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    path = resolve_config_path(config_path, environ)

    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read configuration {path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigError(f"Configuration {path} must be a mapping of option names to values")

    config_data.update(_env_overrides(environ))

    try:
        return GuardConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration {path}: {e}") from e
