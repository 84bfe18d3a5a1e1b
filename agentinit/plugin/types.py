"""
Plugin Types.

This module defines the data model shared by the registry, the sorter, the
lifecycle runner and the heavyweight manager.

Key features:
- Immutable plugin descriptors (PluginMeta)
- Optional plugin capabilities (hooks, heavyweight config, custom merge)
- Per-run plugin configuration (PluginConfig)
- Heavyweight configuration and protected file declarations
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agentinit.config.schema import OptionField
    from agentinit.core.context import PluginContext


class HookName(Enum):
    """Lifecycle hook names, in the order the initializer runs them."""

    BEFORE_INIT = "before_init"
    EXECUTE = "execute"
    AFTER_INIT = "after_init"
    CLEANUP = "cleanup"


class MergeStrategy(Enum):
    """How a protected file is combined after a heavyweight command."""

    APPEND = "append"
    PREPEND = "prepend"
    CUSTOM = "custom"


# Hooks and capabilities may be plain functions or coroutine functions
Hook = Callable[["PluginContext"], Awaitable[None] | None]
MergeFunc = Callable[[str, str, str, "PluginContext"], Awaitable[str] | str]


@dataclass(frozen=True)
class PluginMeta:
    """
    Static plugin descriptor.

    Attributes:
        name: Unique plugin name
        command_name: Unique name used on the command line
        version: Plugin version string
        description: Human-readable description
        dependencies: Names of plugins that must run before this one
        conflicts: Names of plugins that cannot be selected together with this one
        heavyweight: Whether initialization is delegated to an external command
        rules_priority: Priority (0-99) of the rules file this plugin produces
        recommended: Whether the plugin is preselected in interactive flows
    """

    name: str
    command_name: str
    version: str = "0.1.0"
    description: str = ""
    dependencies: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    heavyweight: bool = False
    rules_priority: int | None = None
    recommended: bool = False

    def __post_init__(self):
        # Accept lists from callers but store tuples
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "conflicts", tuple(self.conflicts))


@dataclass
class PluginConfig:
    """Configuration of one plugin for a single initialization run."""

    enabled: bool = True
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProtectedFile:
    """A file that both the scaffolder and a heavyweight command may write."""

    path: str
    merge_strategy: MergeStrategy = MergeStrategy.APPEND


@dataclass
class HeavyweightConfig:
    """
    Configuration returned by a heavyweight plugin.

    Attributes:
        protected_files: Files to back up and merge around the command
        init_command: Shell command to run, or None to skip execution
        timeout: Timeout in seconds (None uses the project setting)
        working_directory: Directory to run in, relative to the project root
        env: Extra environment variables for the command
        migrate_claude_md: Redirect CLAUDE.md changes into a rules file
        rules_file_name: Base name of the migrated rules file
    """

    protected_files: list[ProtectedFile] = field(default_factory=list)
    init_command: str | None = None
    timeout: float | None = None
    working_directory: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    migrate_claude_md: bool = True
    rules_file_name: str | None = None


@dataclass
class Plugin:
    """
    A plugin: descriptor plus optional capabilities.

    Every capability is optional. The core checks for None before calling,
    and awaits the result when it is awaitable.
    """

    meta: PluginMeta
    hooks: dict[HookName, Hook] = field(default_factory=dict)
    get_heavyweight_config: Callable[..., Any] | None = None
    merge_file: MergeFunc | None = None
    configure: Callable[..., Any] | None = None
    options_schema: dict[str, "OptionField"] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.meta.name

    def get_hook(self, hook: HookName) -> Hook | None:
        """Return the callable for a hook, or None if the plugin lacks it."""
        return self.hooks.get(hook)
