"""Configuration loading for bcmguard."""

from .settings import ConfigError, GuardConfig, load_config, resolve_config_path

__all__ = ["ConfigError", "GuardConfig", "load_config", "resolve_config_path"]
