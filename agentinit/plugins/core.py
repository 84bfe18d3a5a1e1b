"""
Built-in core plugin.

Always visible and always part of a run. Writes the project rules file that
every other rules file is ordered after.
"""

from agentinit import __version__
from agentinit.plugin.types import HookName, Plugin, PluginMeta


def _execute(context) -> None:
    path = context.rules.write_project_rules(context.project_root.resolve().name, __version__)
    context.logger.info("Wrote %s", path.relative_to(context.project_root))


def create_plugin() -> Plugin:
    return Plugin(
        meta=PluginMeta(
            name="core",
            command_name="core",
            version=__version__,
            description="Project rules and base directory layout",
            recommended=True,
        ),
        hooks={HookName.EXECUTE: _execute},
    )
