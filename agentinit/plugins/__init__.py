"""Built-in plugins."""

from agentinit.plugin.types import Plugin
from agentinit.plugins import core


def builtin_plugins() -> list[Plugin]:
    return [core.create_plugin()]


__all__ = ["builtin_plugins"]
