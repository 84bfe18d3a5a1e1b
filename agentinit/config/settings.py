"""
Project Configuration.

This module locates, loads and validates the project config file.

Key features:
- Search order: project file, project directory file, user file
- [settings] validated against an option schema
- [visibility], [selection] and [plugins.<name>] sections
- Commented default config rendered with tomlkit
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit

from agentinit.config.schema import OptionField, ValidationError, validate_options
from agentinit.config.toml_handler import TOMLError, read_toml, schema_table, write_toml
from agentinit.plugin.registry import VisibilityConfig
from agentinit.plugin.types import PluginConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILES = (".agentinit.toml", ".agentinit/config.toml")
USER_CONFIG_FILE = ".agentinit/config.toml"

SETTINGS_SCHEMA: dict[str, OptionField] = {
    "log_level": OptionField(
        str,
        "INFO",
        "Console log level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    ),
    "command_timeout": OptionField(
        float,
        120.0,
        "Default timeout in seconds for heavyweight init commands",
        min=1,
    ),
    "backup_dir": OptionField(
        str,
        ".agent/tmp/heavyweight-backup",
        "Where protected files are copied while a heavyweight command runs",
        min=1,
    ),
    "rules_dir": OptionField(str, ".claude/rules", "Directory for numbered rules files", min=1),
    "migrate_claude_md": OptionField(
        bool,
        True,
        "Move CLAUDE.md changes made by heavyweight commands into a rules file",
    ),
}


class ConfigError(Exception):
    """Raised when a config file cannot be read or is invalid."""

    pass


@dataclass
class Settings:
    """Validated [settings] section."""

    log_level: str = "INFO"
    command_timeout: float = 120.0
    backup_dir: str = ".agent/tmp/heavyweight-backup"
    rules_dir: str = ".claude/rules"
    migrate_claude_md: bool = True


@dataclass
class ProjectConfig:
    """
    Parsed project configuration.

    Attributes:
        settings: Core settings
        visibility: Plugin allow/deny lists
        selection: Plugins selected when none are given on the command line
        plugins: Per-plugin config from [plugins.<name>] tables
        source: File the config was read from (None for defaults)
    """

    settings: Settings = field(default_factory=Settings)
    visibility: VisibilityConfig = field(default_factory=VisibilityConfig)
    selection: list[str] = field(default_factory=list)
    plugins: dict[str, PluginConfig] = field(default_factory=dict)
    source: Path | None = None


def find_config_file(project_root: Path, home: Path | None = None) -> Path | None:
    """Return the first existing config file, or None."""
    candidates = [project_root / name for name in PROJECT_CONFIG_FILES]
    candidates.append((home or Path.home()) / USER_CONFIG_FILE)

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_project_config(
    project_root: Path,
    config_file: Path | None = None,
    home: Path | None = None,
) -> ProjectConfig:
    """
    Load the project configuration.

    Args:
        project_root: Project being initialized
        config_file: Explicit config file (skips the search)
        home: Home directory for the user config (defaults to Path.home())

    Returns:
        ProjectConfig; defaults when no file exists

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    if config_file is None:
        config_file = find_config_file(project_root, home)
        if config_file is None:
            logger.debug("No config file found, using defaults")
            return ProjectConfig()

    try:
        data = read_toml(config_file)
    except TOMLError as e:
        raise ConfigError(str(e)) from e

    config = parse_project_config(data)
    config.source = config_file
    logger.debug("Loaded config from %s", config_file)
    return config


def parse_project_config(data: dict[str, Any]) -> ProjectConfig:
    """
    Build a ProjectConfig from parsed TOML data.

    Raises:
        ConfigError: On unknown sections or invalid values
    """
    unknown = set(data) - {"settings", "visibility", "selection", "plugins"}
    if unknown:
        raise ConfigError(f"Unknown config section(s): {', '.join(sorted(unknown))}")

    try:
        settings = Settings(**validate_options(data.get("settings", {}), SETTINGS_SCHEMA))
    except ValidationError as e:
        raise ConfigError(f"Invalid [settings]: {e}") from e
    settings.command_timeout = float(settings.command_timeout)

    visibility_data = data.get("visibility", {})
    visibility = VisibilityConfig(
        enabled=_string_list(visibility_data, "enabled", "visibility"),
        disabled=_string_list(visibility_data, "disabled", "visibility"),
    )

    selection = _string_list(data.get("selection", {}), "plugins", "selection")

    plugins = {}
    for name, table in data.get("plugins", {}).items():
        if not isinstance(table, dict):
            raise ConfigError(f"[plugins.{name}] must be a table")
        enabled = table.get("enabled", True)
        options = table.get("options", {})
        if not isinstance(enabled, bool):
            raise ConfigError(f"[plugins.{name}] enabled must be a boolean")
        if not isinstance(options, dict):
            raise ConfigError(f"[plugins.{name}] options must be a table")
        plugins[name] = PluginConfig(enabled=enabled, options=dict(options))

    return ProjectConfig(
        settings=settings,
        visibility=visibility,
        selection=selection,
        plugins=plugins,
    )


def _string_list(table: dict[str, Any], key: str, section: str) -> list[str]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"[{section}] {key} must be a list of strings")
    return list(value)


def default_config_document() -> tomlkit.TOMLDocument:
    """Render the default config with descriptive comments."""
    doc = tomlkit.document()
    doc.add(tomlkit.comment("agentinit project configuration"))
    doc.add(tomlkit.nl())

    doc.add("settings", schema_table(SETTINGS_SCHEMA, {}))

    visibility = tomlkit.table()
    visibility.add(tomlkit.comment("Non-empty 'enabled' hides every plugin not listed"))
    visibility.add("enabled", tomlkit.array())
    visibility.add("disabled", tomlkit.array())
    doc.add("visibility", visibility)

    selection = tomlkit.table()
    selection.add(tomlkit.comment("Plugins to run when none are given on the command line"))
    selection.add("plugins", ["core"])
    doc.add("selection", selection)

    return doc


def write_default_config(path: Path, overwrite: bool = False) -> None:
    """
    Write the default config file.

    Raises:
        ConfigError: If the file exists and ``overwrite`` is False, or on I/O errors
    """
    if path.exists() and not overwrite:
        raise ConfigError(f"Config file already exists: {path}")
    try:
        write_toml(path, default_config_document())
    except TOMLError as e:
        raise ConfigError(str(e)) from e
