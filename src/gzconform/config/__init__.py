"""Harness configuration loading."""

from .loader import CONFIG_SCHEMA, ConfigError, build_config, load_config, parse_case, parse_config
from .models import CommandConfig, HarnessConfig, Implementation, RunOptions

__all__ = [
    "CONFIG_SCHEMA",
    "CommandConfig",
    "ConfigError",
    "HarnessConfig",
    "Implementation",
    "RunOptions",
    "build_config",
    "load_config",
    "parse_case",
    "parse_config",
]
