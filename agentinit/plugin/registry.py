"""
Plugin Registry.

This module provides the in-memory catalog of available plugins.

Key features:
- Unique plugin names and command names (checked independently)
- Registration order preserved for deterministic iteration
- Visibility filtering with always-visible protected plugins
- Enabled filtering against per-run plugin configs
"""

import logging
from dataclasses import dataclass, field

from agentinit.plugin.errors import DuplicateRegistrationError, PluginNotFoundError
from agentinit.plugin.manifest import validate_plugin
from agentinit.plugin.types import Plugin, PluginConfig

logger = logging.getLogger(__name__)

# Plugins that cannot be hidden by visibility settings
PROTECTED_PLUGINS: tuple[str, ...] = ("core",)


@dataclass
class VisibilityConfig:
    """
    Allow/deny filter over registered plugins.

    A non-empty ``enabled`` list is a whitelist and takes precedence over
    ``disabled``.
    """

    enabled: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)

    def is_visible(self, name: str) -> bool:
        if name in PROTECTED_PLUGINS:
            return True
        if self.enabled:
            return name in self.enabled
        if self.disabled:
            return name not in self.disabled
        return True


class PluginRegistry:
    """Catalog of registered plugins keyed by name and by command name."""

    def __init__(self):
        self._plugins: dict[str, Plugin] = {}
        self._command_names: dict[str, str] = {}  # command_name -> plugin name

    def register(self, plugin: Plugin) -> None:
        """
        Register a plugin.

        Args:
            plugin: Plugin to register

        Raises:
            PluginValidationError: If the descriptor is malformed
            DuplicateRegistrationError: If the name or command name is taken
        """
        validate_plugin(plugin)
        meta = plugin.meta

        if meta.name in self._plugins:
            raise DuplicateRegistrationError("name", meta.name, meta.name)

        owner = self._command_names.get(meta.command_name)
        if owner is not None:
            raise DuplicateRegistrationError("command name", meta.command_name, owner)

        self._plugins[meta.name] = plugin
        self._command_names[meta.command_name] = meta.name
        logger.debug("Registered plugin %s (%s)", meta.name, meta.command_name)

    def get(self, name: str) -> Plugin:
        """
        Get a plugin by name.

        Raises:
            PluginNotFoundError: If no plugin has this name
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginNotFoundError(name) from None

    def get_by_command_name(self, command_name: str) -> Plugin | None:
        name = self._command_names.get(command_name)
        if name is None:
            return None
        return self._plugins[name]

    def has(self, name: str) -> bool:
        return name in self._plugins

    def get_all(self) -> list[Plugin]:
        """Return all plugins in registration order."""
        return list(self._plugins.values())

    def get_visible(self, visibility: VisibilityConfig | None = None) -> list[Plugin]:
        """Return plugins passing the visibility filter, in registration order."""
        if visibility is None:
            return self.get_all()
        return [p for p in self._plugins.values() if visibility.is_visible(p.name)]

    def get_enabled(self, configs: dict[str, PluginConfig]) -> list[Plugin]:
        """Return plugins not explicitly disabled in ``configs``."""
        return [
            p
            for p in self._plugins.values()
            if configs.get(p.name, PluginConfig()).enabled
        ]

    def names(self) -> list[str]:
        return list(self._plugins)

    def count(self) -> int:
        return len(self._plugins)

    def clear(self) -> None:
        self._plugins.clear()
        self._command_names.clear()

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins
