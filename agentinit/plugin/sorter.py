"""
Dependency Sorter.

This module orders a selection of plugins so that every plugin comes after
all of its dependencies.

Key features:
- Depth-first traversal with a three-color visited map
- Cycle detection reporting every participant in discovery order
- Hard errors for dependencies outside the selection
- Stable output: roots in registration order, dependencies in declared order
"""

from collections.abc import Iterable
from enum import Enum

from agentinit.plugin.errors import (
    CycleError,
    MissingDependencyError,
    PluginNotFoundError,
)
from agentinit.plugin.registry import PluginRegistry
from agentinit.plugin.types import Plugin


class _Color(Enum):
    WHITE = 0  # unvisited
    GRAY = 1  # in progress
    BLACK = 2  # done


class DependencySorter:
    """Topological sorter over the subgraph induced by a selection."""

    def __init__(self, registry: PluginRegistry):
        self.registry = registry

    def sort(self, selection: Iterable[str]) -> list[Plugin]:
        """
        Sort selected plugins by dependency.

        Args:
            selection: Names of selected, enabled plugins

        Returns:
            The selected plugins, each placed after its dependencies

        Raises:
            PluginNotFoundError: If a selected name is not registered
            MissingDependencyError: If a dependency is outside the selection
            CycleError: If the selection contains a dependency cycle
        """
        selected = set()
        for name in selection:
            if not self.registry.has(name):
                raise PluginNotFoundError(name)
            selected.add(name)

        # Roots in registration order keep the output independent of input order
        roots = [name for name in self.registry.names() if name in selected]

        colors = {name: _Color.WHITE for name in roots}
        stack: list[str] = []
        result: list[Plugin] = []

        def visit(name: str) -> None:
            colors[name] = _Color.GRAY
            stack.append(name)
            plugin = self.registry.get(name)

            for dep in plugin.meta.dependencies:
                if dep not in selected:
                    raise MissingDependencyError(name, dep)
                if colors[dep] is _Color.GRAY:
                    raise CycleError(stack[stack.index(dep):])
                if colors[dep] is _Color.WHITE:
                    visit(dep)

            stack.pop()
            colors[name] = _Color.BLACK
            result.append(plugin)

        for name in roots:
            if colors[name] is _Color.WHITE:
                visit(name)

        return result


def sort_plugins(registry: PluginRegistry, selection: Iterable[str]) -> list[Plugin]:
    """Convenience wrapper around DependencySorter.sort()."""
    return DependencySorter(registry).sort(selection)


def is_heavyweight(plugin: Plugin) -> bool:
    return plugin.meta.heavyweight


def partition_by_weight(plugins: list[Plugin]) -> tuple[list[Plugin], list[Plugin]]:
    """
    Split sorted plugins into lightweight and heavyweight lists.

    Relative order is preserved in both lists.
    """
    lightweight = [p for p in plugins if not is_heavyweight(p)]
    heavyweight = [p for p in plugins if is_heavyweight(p)]
    return lightweight, heavyweight
