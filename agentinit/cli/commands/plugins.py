"""
agentinit list command.
"""

from typing import Any

from agentinit.cli.commands import build_registry, load_config


def list_command(args: Any) -> int:
    config = load_config(args)
    registry = build_registry(args)
    plugins = registry.get_all() if args.all else registry.get_visible(config.visibility)

    if not plugins:
        print("No plugins available")
        return 0

    for plugin in plugins:
        meta = plugin.meta
        flags = []
        if meta.heavyweight:
            flags.append("heavyweight")
        if meta.dependencies:
            flags.append(f"requires {', '.join(meta.dependencies)}")
        suffix = f" [{'; '.join(flags)}]" if flags else ""
        print(f"{meta.command_name:<20} {meta.version:<10} {meta.description}{suffix}")

    return 0
