"""
agentinit CLI.

Usage:
    agentinit init [PLUGIN ...]        Initialize the project with plugins
    agentinit list [--all]             List available plugins
    agentinit config --write PATH      Write a default config file
"""

import argparse
import sys
from pathlib import Path

from agentinit import __version__
from agentinit.config.settings import ConfigError
from agentinit.plugin.errors import PluginError


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    # Options shared by every subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    common.add_argument(
        "--target",
        type=Path,
        default=Path("."),
        help="Project directory (default: current directory)",
    )
    common.add_argument("--config", type=Path, help="Config file (skips the search)")
    common.add_argument(
        "--plugins-dir",
        type=Path,
        help="Directory of external plugins (default: <target>/.agentinit/plugins)",
    )
    common.add_argument("--log-file", help="Also write debug logs to this file")

    parser = argparse.ArgumentParser(
        prog="agentinit",
        description="Scaffold AI assistant configuration with plugins",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command")

    init = commands.add_parser("init", parents=[common], help="Initialize the project")
    init.add_argument("plugins", nargs="*", help="Plugin names or command names")

    listing = commands.add_parser("list", parents=[common], help="List plugins")
    listing.add_argument(
        "--all", action="store_true", help="Include plugins hidden by visibility settings"
    )

    config = commands.add_parser("config", parents=[common], help="Manage the config file")
    config.add_argument("--write", type=Path, required=True, help="Where to write it")
    config.add_argument("--force", action="store_true", help="Overwrite an existing file")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the agentinit CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "init":
            from agentinit.cli.commands.init import init_command

            return init_command(args)

        elif args.command == "list":
            from agentinit.cli.commands.plugins import list_command

            return list_command(args)

        elif args.command == "config":
            from agentinit.cli.commands.config import config_command

            return config_command(args)

    except (PluginError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    return 1


if __name__ == "__main__":
    sys.exit(main())
