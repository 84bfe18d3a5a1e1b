"""
Shared helpers for CLI commands.
"""

from pathlib import Path
from typing import Any

from agentinit.config.settings import ProjectConfig, load_project_config
from agentinit.plugin.loader import PluginLoader
from agentinit.plugin.registry import PluginRegistry
from agentinit.plugins import builtin_plugins


def load_config(args: Any) -> ProjectConfig:
    return load_project_config(args.target, config_file=args.config)


def build_registry(args: Any) -> PluginRegistry:
    """Register built-in plugins, then external plugins from the plugins directory."""
    registry = PluginRegistry()
    for plugin in builtin_plugins():
        registry.register(plugin)

    plugins_dir = args.plugins_dir or Path(args.target) / ".agentinit" / "plugins"
    for plugin in PluginLoader(plugins_dir).discover():
        registry.register(plugin)

    return registry
