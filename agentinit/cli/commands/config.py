"""
agentinit config command.
"""

from typing import Any

from agentinit.config.settings import write_default_config


def config_command(args: Any) -> int:
    write_default_config(args.write, overwrite=args.force)
    print(f"Wrote {args.write}")
    return 0
