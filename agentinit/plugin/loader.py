"""
External Plugin Loader.

This module loads plugins shipped as directories with a manifest.json and a
Python entry point.

Key features:
- Plugin discovery in a plugins directory
- importlib integration for dynamic loading
- Per-loader module cache with unload support
- Capabilities taken from module-level functions
"""

import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType

from agentinit.plugin.errors import PluginError
from agentinit.plugin.manifest import Manifest, parse_manifest
from agentinit.plugin.types import HookName, Plugin

logger = logging.getLogger(__name__)


class LoaderError(PluginError):
    """Raised when an external plugin module cannot be loaded."""

    pass


class PluginLoader:
    """Discovers and imports external plugins from a directory."""

    def __init__(self, plugins_dir: Path):
        self.plugins_dir = plugins_dir
        self._module_cache: dict[str, ModuleType] = {}

    def discover(self) -> list[Plugin]:
        """
        Load every valid plugin under ``plugins_dir``.

        Directories without a manifest.json are ignored. Broken plugins are
        logged and skipped.

        Returns:
            Loaded plugins sorted by directory name
        """
        if not self.plugins_dir.is_dir():
            return []

        plugins = []
        for plugin_dir in sorted(self.plugins_dir.iterdir()):
            if not plugin_dir.is_dir() or not (plugin_dir / "manifest.json").exists():
                continue
            try:
                plugins.append(self.load(plugin_dir))
            except PluginError as e:
                logger.warning("Skipping plugin in %s: %s", plugin_dir.name, e)

        return plugins

    def load(self, plugin_dir: Path) -> Plugin:
        """
        Load a single plugin directory.

        Args:
            plugin_dir: Directory containing manifest.json

        Returns:
            Plugin built from the manifest and the module's functions

        Raises:
            PluginValidationError: If the manifest is invalid
            LoaderError: If the entry point cannot be imported
        """
        manifest = parse_manifest(plugin_dir / "manifest.json")
        module = self.load_module(plugin_dir, manifest)
        return plugin_from_module(manifest, module)

    def load_module(self, plugin_dir: Path, manifest: Manifest) -> ModuleType:
        """Import the plugin entry point, using the cache when possible."""
        plugin_name = manifest.meta.name
        if plugin_name in self._module_cache:
            return self._module_cache[plugin_name]

        entry_point = plugin_dir / manifest.main
        if not entry_point.exists():
            raise LoaderError(f"Entry point not found: {entry_point}")

        module_name = _module_name(plugin_name)
        try:
            spec = importlib.util.spec_from_file_location(module_name, entry_point)
            if spec is None or spec.loader is None:
                raise LoaderError(f"Failed to create module spec for {entry_point}")

            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
        except LoaderError:
            sys.modules.pop(module_name, None)
            raise
        except Exception as e:
            sys.modules.pop(module_name, None)
            raise LoaderError(f"Failed to load plugin module '{plugin_name}': {e}") from e

        self._module_cache[plugin_name] = module
        return module

    def unload(self, plugin_name: str) -> None:
        self._module_cache.pop(plugin_name, None)
        sys.modules.pop(_module_name(plugin_name), None)

    def is_cached(self, plugin_name: str) -> bool:
        return plugin_name in self._module_cache


def plugin_from_module(manifest: Manifest, module: ModuleType) -> Plugin:
    """Build a Plugin from the callables a module defines."""
    hooks = {}
    for hook in HookName:
        func = getattr(module, hook.value, None)
        if callable(func):
            hooks[hook] = func

    def capability(attr: str):
        func = getattr(module, attr, None)
        return func if callable(func) else None

    return Plugin(
        meta=manifest.meta,
        hooks=hooks,
        get_heavyweight_config=capability("get_heavyweight_config"),
        merge_file=capability("merge_file"),
        configure=capability("configure"),
        options_schema=getattr(module, "OPTIONS_SCHEMA", {}),
    )


def _module_name(plugin_name: str) -> str:
    return f"agentinit_plugin_{plugin_name.replace('-', '_')}"
