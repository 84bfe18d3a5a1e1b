"""
Plugin Context.

The object handed to every hook and capability call.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentinit.core.fileops import FileOperations
from agentinit.core.rules import RulesWriter
from agentinit.plugin.types import PluginConfig


@dataclass
class PluginContext:
    """
    Shared execution context.

    Attributes:
        project_root: Directory being initialized
        configs: Plugin configs for this run, shared by reference
        fileops: File operation primitives
        rules: Rules file writer
        logger: Logger for plugin status output
        shared: Scratch space plugins may use to pass data downstream
    """

    project_root: Path
    configs: dict[str, PluginConfig] = field(default_factory=dict)
    fileops: FileOperations = field(default_factory=FileOperations)
    rules: RulesWriter | None = None
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("agentinit.plugins")
    )
    shared: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.rules is None:
            self.rules = RulesWriter(self.project_root, fileops=self.fileops)

    def config_for(self, plugin_name: str) -> PluginConfig:
        return self.configs.get(plugin_name, PluginConfig())

    def options_for(self, plugin_name: str) -> dict[str, Any]:
        return self.config_for(plugin_name).options
