"""
Plugin Manifest and Descriptor Validation.

This module validates plugin descriptors and parses manifest.json files of
external plugins.

Key features:
- Descriptor validation (names, command names, priorities, hooks)
- JSON manifest parsing into PluginMeta
- Strict field type checking with descriptive errors
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agentinit.plugin.errors import PluginValidationError
from agentinit.plugin.types import HookName, Plugin, PluginMeta

NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")
VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+")


@dataclass
class Manifest:
    """
    Represents an external plugin manifest.

    Attributes:
        meta: Descriptor built from the manifest fields
        main: Entry point file, relative to the plugin directory
        raw_data: Raw manifest data
    """

    meta: PluginMeta
    main: str
    raw_data: dict[str, Any]


def validate_meta(meta: PluginMeta) -> None:
    """
    Validate a plugin descriptor.

    Args:
        meta: Descriptor to validate

    Raises:
        PluginValidationError: If any field is invalid
    """
    if not isinstance(meta.name, str) or not NAME_PATTERN.match(meta.name):
        raise PluginValidationError(
            f"Invalid plugin name: {meta.name!r}. "
            f"Must be lowercase alphanumeric with hyphens only."
        )

    if not isinstance(meta.command_name, str) or not meta.command_name.strip():
        raise PluginValidationError(
            f"Plugin '{meta.name}' must have a non-empty command name"
        )

    if not isinstance(meta.version, str) or not meta.version.strip():
        raise PluginValidationError(f"Plugin '{meta.name}' must have a version")

    if meta.rules_priority is not None:
        if isinstance(meta.rules_priority, bool) or not isinstance(
            meta.rules_priority, int
        ):
            raise PluginValidationError(
                f"Plugin '{meta.name}' rules priority must be an integer"
            )
        if not 0 <= meta.rules_priority <= 99:
            raise PluginValidationError(
                f"Plugin '{meta.name}' rules priority {meta.rules_priority} "
                f"is outside 0-99"
            )

    for label, names in (
        ("dependencies", meta.dependencies),
        ("conflicts", meta.conflicts),
    ):
        for item in names:
            if not isinstance(item, str) or not item:
                raise PluginValidationError(
                    f"Plugin '{meta.name}' has an invalid entry in {label}: {item!r}"
                )


def validate_plugin(plugin: Plugin) -> None:
    """
    Validate a plugin descriptor and its hook table.

    Args:
        plugin: Plugin to validate

    Raises:
        PluginValidationError: If the plugin is malformed
    """
    if not isinstance(plugin.meta, PluginMeta):
        raise PluginValidationError("Plugin must carry a PluginMeta descriptor")

    validate_meta(plugin.meta)

    for hook, func in plugin.hooks.items():
        if not isinstance(hook, HookName):
            raise PluginValidationError(
                f"Plugin '{plugin.name}' has unknown hook {hook!r}. "
                f"Valid hooks: {', '.join(h.value for h in HookName)}"
            )
        if not callable(func):
            raise PluginValidationError(
                f"Plugin '{plugin.name}' hook '{hook.value}' is not callable"
            )


def parse_manifest(manifest_path: Path) -> Manifest:
    """
    Parse a manifest.json file.

    Args:
        manifest_path: Path to manifest.json

    Returns:
        Manifest object

    Raises:
        PluginValidationError: If the file cannot be read or is invalid
    """
    try:
        with open(manifest_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise PluginValidationError(f"Manifest file not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise PluginValidationError(f"Failed to parse manifest JSON: {e}") from e

    if not isinstance(data, dict):
        raise PluginValidationError("Manifest must be a JSON object")

    for required in ("name", "version", "main"):
        if required not in data:
            raise PluginValidationError(f"Missing required field: {required}")

    version = data["version"]
    if not isinstance(version, str) or not VERSION_PATTERN.match(version):
        raise PluginValidationError(
            f"Invalid version: {version}. Expected semantic versioning (e.g., '1.0.0')"
        )

    for list_field in ("dependencies", "conflicts"):
        if not isinstance(data.get(list_field, []), list):
            raise PluginValidationError(f"'{list_field}' field must be a list")

    heavyweight = data.get("heavyweight", False)
    if not isinstance(heavyweight, bool):
        raise PluginValidationError("'heavyweight' field must be a boolean")

    meta = PluginMeta(
        name=data["name"],
        command_name=data.get("command_name", data["name"]),
        version=version,
        description=data.get("description", ""),
        dependencies=tuple(data.get("dependencies", [])),
        conflicts=tuple(data.get("conflicts", [])),
        heavyweight=heavyweight,
        rules_priority=data.get("rules_priority"),
        recommended=bool(data.get("recommended", False)),
    )
    validate_meta(meta)

    return Manifest(meta=meta, main=data["main"], raw_data=data)
