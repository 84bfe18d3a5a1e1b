"""
Lifecycle Runner.

This module runs named lifecycle hooks across the loaded plugin set.

Key features:
- Load step that filters disabled plugins and sorts by dependency
- Sequential hook execution in dependency order
- Fail-fast: the first failing hook stops the pass
- Sync and async hooks (awaitable results are awaited)
"""

import inspect
import logging
from collections.abc import Iterable
from enum import Enum

from agentinit.plugin.errors import HookExecutionError, LifecycleError
from agentinit.plugin.registry import PluginRegistry
from agentinit.plugin.sorter import sort_plugins
from agentinit.plugin.types import HookName, Plugin, PluginConfig

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    """Lifecycle runner state enumeration."""

    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    DONE = "done"


class LifecycleRunner:
    """
    Executes lifecycle hooks for a sorted plugin set.

    State machine: IDLE -> LOADED -> RUNNING(hook) -> LOADED ... -> DONE.
    ``clear()`` returns to IDLE from any state.
    """

    def __init__(self, registry: PluginRegistry):
        self.registry = registry
        self.state = LifecycleState.IDLE
        self.current_hook: HookName | None = None
        self.completed_hooks: list[HookName] = []
        self._loaded: list[Plugin] = []

    @property
    def loaded_plugins(self) -> list[Plugin]:
        return list(self._loaded)

    def load(
        self,
        selection: Iterable[str],
        configs: dict[str, PluginConfig] | None = None,
    ) -> list[Plugin]:
        """
        Sort and store the enabled subset of a selection.

        Args:
            selection: Selected plugin names
            configs: Per-plugin configs; plugins with ``enabled=False`` are dropped

        Returns:
            The loaded plugins in execution order

        Raises:
            PluginNotFoundError, MissingDependencyError, CycleError: From sorting
        """
        configs = configs or {}
        enabled = [
            name
            for name in selection
            if configs.get(name, PluginConfig()).enabled
        ]
        plugins = sort_plugins(self.registry, enabled)
        self.set_loaded(plugins)
        return plugins

    def set_loaded(self, plugins: list[Plugin]) -> None:
        """Store an already sorted plugin list."""
        self._loaded = list(plugins)
        self.completed_hooks = []
        self.current_hook = None
        self.state = LifecycleState.LOADED
        logger.debug(
            "Loaded plugins: %s", ", ".join(p.name for p in self._loaded) or "(none)"
        )

    async def execute_hook(self, hook: HookName, context) -> None:
        """
        Run one hook across every loaded plugin, in order.

        Args:
            hook: Hook to run
            context: Shared plugin context passed to every hook

        Raises:
            LifecycleError: If no plugin set is loaded or the run is finished
            HookExecutionError: If a hook raises; later plugins are not invoked
        """
        if self.state is LifecycleState.IDLE:
            raise LifecycleError(f"Cannot run '{hook.value}' hook: no plugins loaded")
        if self.state is LifecycleState.DONE:
            raise LifecycleError(f"Cannot run '{hook.value}' hook: run already finished")
        if self.state is LifecycleState.RUNNING:
            raise LifecycleError(
                f"Cannot run '{hook.value}' hook while "
                f"'{self.current_hook.value}' is running"
            )

        self.state = LifecycleState.RUNNING
        self.current_hook = hook
        try:
            for plugin in self._loaded:
                func = plugin.get_hook(hook)
                if func is None:
                    continue

                logger.debug("Running %s hook for %s", hook.value, plugin.name)
                try:
                    result = func(context)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    raise HookExecutionError(plugin.name, hook.value, e) from e
        finally:
            self.current_hook = None
            self.state = LifecycleState.LOADED

        self.completed_hooks.append(hook)

    def finish(self) -> None:
        self.state = LifecycleState.DONE

    def clear(self) -> None:
        """Drop the loaded set and return to IDLE."""
        self._loaded = []
        self.completed_hooks = []
        self.current_hook = None
        self.state = LifecycleState.IDLE
