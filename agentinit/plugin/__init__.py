"""
agentinit Plugin System - plugin registry, ordering and lifecycle.

This module handles:
- Plugin descriptors and capabilities
- Registration and visibility
- Dependency ordering
- Lifecycle hook execution
- Loading external plugins
"""

from agentinit.plugin.errors import (
    CommandExecutionError,
    CommandTimeoutError,
    CycleError,
    DuplicateRegistrationError,
    HeavyweightConfigError,
    HeavyweightError,
    HookExecutionError,
    LifecycleError,
    MergeStrategyError,
    MissingDependencyError,
    PluginError,
    PluginNotFoundError,
    PluginValidationError,
    SelectionError,
)
from agentinit.plugin.lifecycle import LifecycleRunner, LifecycleState
from agentinit.plugin.registry import PROTECTED_PLUGINS, PluginRegistry, VisibilityConfig
from agentinit.plugin.sorter import (
    DependencySorter,
    is_heavyweight,
    partition_by_weight,
    sort_plugins,
)
from agentinit.plugin.types import (
    HeavyweightConfig,
    HookName,
    MergeStrategy,
    Plugin,
    PluginConfig,
    PluginMeta,
    ProtectedFile,
)

__all__ = [
    "CommandExecutionError",
    "CommandTimeoutError",
    "CycleError",
    "DependencySorter",
    "DuplicateRegistrationError",
    "HeavyweightConfig",
    "HeavyweightConfigError",
    "HeavyweightError",
    "HookExecutionError",
    "HookName",
    "LifecycleError",
    "LifecycleRunner",
    "LifecycleState",
    "MergeStrategy",
    "MergeStrategyError",
    "MissingDependencyError",
    "PROTECTED_PLUGINS",
    "Plugin",
    "PluginConfig",
    "PluginError",
    "PluginMeta",
    "PluginNotFoundError",
    "PluginRegistry",
    "PluginValidationError",
    "ProtectedFile",
    "SelectionError",
    "VisibilityConfig",
    "is_heavyweight",
    "partition_by_weight",
    "sort_plugins",
]
