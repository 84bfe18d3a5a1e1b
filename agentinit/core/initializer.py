"""
Project Initializer.

This module drives a full initialization run over a plugin selection.

Key features:
- Selection checks against the registry and visibility settings
- Protected plugins added automatically
- Conflict resolution (first selected plugin wins)
- Per-plugin configuration from the config file or the plugin itself
- Lightweight hooks in dependency order, then heavyweight plugins one by one
"""

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path

from agentinit.config.schema import ValidationError, validate_options
from agentinit.config.settings import ProjectConfig
from agentinit.core.context import PluginContext
from agentinit.core.fileops import FileOperations
from agentinit.core.heavyweight import HeavyweightExecutionResult, HeavyweightPluginManager
from agentinit.core.rules import RulesWriter
from agentinit.plugin.errors import (
    HookExecutionError,
    PluginValidationError,
    SelectionError,
)
from agentinit.plugin.lifecycle import LifecycleRunner
from agentinit.plugin.registry import PROTECTED_PLUGINS, PluginRegistry
from agentinit.plugin.sorter import partition_by_weight
from agentinit.plugin.types import HookName, Plugin, PluginConfig

logger = logging.getLogger(__name__)

SETUP_HOOKS = (HookName.BEFORE_INIT, HookName.EXECUTE, HookName.AFTER_INIT)


@dataclass
class InitReport:
    """Summary of an initialization run."""

    order: list[str] = field(default_factory=list)
    lightweight: list[str] = field(default_factory=list)
    heavyweight: list[str] = field(default_factory=list)
    heavyweight_results: list[HeavyweightExecutionResult] = field(default_factory=list)
    removed_conflicts: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.success for r in self.heavyweight_results)

    @property
    def failed(self) -> list[HeavyweightExecutionResult]:
        return [r for r in self.heavyweight_results if not r.success]


def resolve_conflicts(
    selection: list[str], registry: PluginRegistry
) -> tuple[list[str], list[str]]:
    """
    Drop plugins that conflict with an earlier selected plugin.

    Conflicts count in either direction.

    Returns:
        Tuple of (accepted names, removed names)
    """
    accepted: list[str] = []
    removed: list[str] = []

    for name in selection:
        meta = registry.get(name).meta
        clash = next(
            (
                other
                for other in accepted
                if other in meta.conflicts or name in registry.get(other).meta.conflicts
            ),
            None,
        )
        if clash is not None:
            logger.warning(
                "Plugin '%s' conflicts with '%s' and was removed from the selection",
                name,
                clash,
            )
            removed.append(name)
        else:
            accepted.append(name)

    return accepted, removed


class InitSession:
    """
    Everything one initialization run owns.

    The registry, configs, lifecycle runner and heavyweight manager are
    instances held here; nothing is module-level state.
    """

    def __init__(
        self,
        project_root: Path,
        registry: PluginRegistry | None = None,
        project_config: ProjectConfig | None = None,
    ):
        self.project_root = project_root
        self.registry = registry or PluginRegistry()
        self.project_config = project_config or ProjectConfig()
        self.configs: dict[str, PluginConfig] = {}

        settings = self.project_config.settings
        self.fileops = FileOperations()
        self.context = PluginContext(
            project_root=project_root,
            configs=self.configs,
            fileops=self.fileops,
            rules=RulesWriter(project_root, settings.rules_dir, self.fileops),
        )
        self.runner = LifecycleRunner(self.registry)
        self.heavyweight = HeavyweightPluginManager(
            project_root,
            fileops=self.fileops,
            backup_dir=settings.backup_dir,
            rules_dir=settings.rules_dir,
            default_timeout=settings.command_timeout,
            migrate_claude_md=settings.migrate_claude_md,
        )


class Initializer:
    """Runs a plugin selection through configuration, hooks and heavyweight execution."""

    def __init__(self, session: InitSession):
        self.session = session

    async def run(self, selection: list[str]) -> InitReport:
        """
        Initialize the project with the selected plugins.

        Args:
            selection: Plugin names or command names

        Returns:
            InitReport; heavyweight failures are reported, not raised

        Raises:
            SelectionError: If a name is unknown or hidden
            PluginValidationError: If plugin options are invalid
            MissingDependencyError, CycleError: From dependency sorting
            HookExecutionError: If a lifecycle hook or configure() fails
        """
        session = self.session
        report = InitReport()

        names = self.resolve_selection(selection)
        names, report.removed_conflicts = resolve_conflicts(names, session.registry)

        await self.configure(names)

        plugins = session.runner.load(names, session.configs)
        lightweight, heavyweight = partition_by_weight(plugins)
        report.order = [p.name for p in plugins]
        report.lightweight = [p.name for p in lightweight]
        report.heavyweight = [p.name for p in heavyweight]
        logger.info("Initializing plugins: %s", ", ".join(report.order) or "(none)")

        session.runner.set_loaded(lightweight)
        for hook in SETUP_HOOKS:
            await session.runner.execute_hook(hook, session.context)

        if heavyweight:
            report.heavyweight_results = await session.heavyweight.execute_all(
                heavyweight, session.context
            )

        await session.runner.execute_hook(HookName.CLEANUP, session.context)
        session.runner.finish()

        return report

    def resolve_selection(self, selection: list[str]) -> list[str]:
        """
        Map names to registered plugin names and add protected plugins.

        Raises:
            SelectionError: If a name is unknown or hidden by visibility settings
        """
        registry = self.session.registry
        visibility = self.session.project_config.visibility
        names: list[str] = []

        for requested in selection:
            plugin = _lookup(registry, requested)
            if plugin is None:
                raise SelectionError(f"Unknown plugin '{requested}'")
            if not visibility.is_visible(plugin.name):
                raise SelectionError(
                    f"Plugin '{plugin.name}' is hidden by visibility settings"
                )
            if plugin.name not in names:
                names.append(plugin.name)

        protected = [
            name for name in PROTECTED_PLUGINS if registry.has(name) and name not in names
        ]
        return protected + names

    async def configure(self, names: list[str]) -> None:
        """
        Build a PluginConfig for every selected plugin.

        Config file entries win over the plugin's own configure() capability.

        Raises:
            HookExecutionError: If configure() raises
            PluginValidationError: If options fail the plugin's schema
        """
        session = self.session
        session.configs.clear()

        for name in names:
            plugin = session.registry.get(name)
            config = session.project_config.plugins.get(name)

            if config is None and plugin.configure is not None:
                try:
                    config = plugin.configure(session.context)
                    if inspect.isawaitable(config):
                        config = await config
                except Exception as e:
                    raise HookExecutionError(name, "configure", e) from e

            if config is None:
                config = PluginConfig()
            elif not isinstance(config, PluginConfig):
                raise PluginValidationError(
                    f"Plugin '{name}' configure() returned {type(config).__name__}, "
                    f"expected PluginConfig"
                )

            session.configs[name] = PluginConfig(
                enabled=config.enabled,
                options=_validated_options(plugin, config.options),
            )


def _lookup(registry: PluginRegistry, name: str) -> Plugin | None:
    if registry.has(name):
        return registry.get(name)
    return registry.get_by_command_name(name)


def _validated_options(plugin: Plugin, options: dict) -> dict:
    if not plugin.options_schema:
        return dict(options)
    try:
        return validate_options(options, plugin.options_schema)
    except ValidationError as e:
        raise PluginValidationError(f"Invalid options for plugin '{plugin.name}': {e}") from e
