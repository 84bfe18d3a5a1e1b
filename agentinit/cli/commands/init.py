"""
agentinit init command.

Initialize a project with the selected plugins.
"""

import asyncio
import sys
from typing import Any

from agentinit.cli.commands import build_registry, load_config
from agentinit.core.initializer import InitReport, InitSession, Initializer
from agentinit.utils.logging import setup_logging


def init_command(args: Any) -> int:
    """
    Execute init command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 if any heavyweight plugin failed)
    """
    config = load_config(args)
    level = "DEBUG" if args.verbose else config.settings.log_level
    setup_logging(level, args.log_file)

    selection = args.plugins or config.selection
    if not selection:
        print("No plugins selected; running core only", file=sys.stderr)

    report = asyncio.run(init_async(args, config, selection))
    print_report(report)
    return 0 if report.ok else 1


async def init_async(args: Any, config, selection: list[str]) -> InitReport:
    """Async init implementation."""
    session = InitSession(args.target.resolve(), build_registry(args), config)
    return await Initializer(session).run(selection)


def print_report(report: InitReport) -> None:
    print(f"Plugins: {', '.join(report.order) or '(none)'}")
    for name in report.removed_conflicts:
        print(f"Skipped (conflict): {name}")

    for result in report.heavyweight_results:
        status = "ok" if result.success else "FAILED"
        print(f"Heavyweight {result.plugin_name}: {status}")
        if result.rules_artifact is not None:
            print(f"  rules: {result.rules_artifact}")
        if result.error:
            print(f"  error: {result.error}", file=sys.stderr)
        for merge in result.merge_results:
            if not merge.success:
                print(f"  {merge.path} ({merge.strategy}): {merge.error}", file=sys.stderr)
