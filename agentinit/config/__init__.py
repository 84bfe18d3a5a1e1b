"""
agentinit Configuration - TOML-based project configuration.

This module provides:
- Option schemas with validation
- Project config discovery and loading
- Default config generation

Example usage:
    from agentinit.config import load_project_config

    config = load_project_config(Path("."))
    print(config.settings.command_timeout)
"""

from agentinit.config.schema import OptionField, ValidationError, default_options, validate_options
from agentinit.config.settings import (
    ConfigError,
    ProjectConfig,
    Settings,
    find_config_file,
    load_project_config,
    parse_project_config,
    write_default_config,
)

__all__ = [
    "ConfigError",
    "OptionField",
    "ProjectConfig",
    "Settings",
    "ValidationError",
    "default_options",
    "find_config_file",
    "load_project_config",
    "parse_project_config",
    "validate_options",
    "write_default_config",
]
