"""
External Process Execution.

This module runs heavyweight init commands as shell subprocesses.

Key features:
- asyncio subprocess with captured stdout/stderr
- Environment variable injection on top of the current environment
- Timeout raced against completion; the process is killed once on timeout
- Distinct errors for spawn failures, non-zero exits and timeouts
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from agentinit.plugin.errors import CommandExecutionError, CommandTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a finished command."""

    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration: float

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


async def run_shell_command(
    command: str,
    cwd: Path,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """
    Run a shell command and wait for it to finish.

    Args:
        command: Command line passed to the shell
        cwd: Working directory
        env: Extra environment variables
        timeout: Timeout in seconds (None waits indefinitely)

    Returns:
        CommandResult for a zero exit code

    Raises:
        CommandExecutionError: If the command cannot be spawned or exits non-zero
        CommandTimeoutError: If the command does not finish within ``timeout``
    """
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    started = time.monotonic()
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            env=full_env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandExecutionError(command, reason=f"failed to start: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Command timed out after %ss, killing: %s", timeout, command)
        try:
            process.kill()
        except ProcessLookupError:
            pass  # already exited
        await process.wait()
        raise CommandTimeoutError(command, timeout) from None

    result = CommandResult(
        command=command,
        exit_code=process.returncode,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        duration=time.monotonic() - started,
    )

    if result.exit_code != 0:
        raise CommandExecutionError(
            command, exit_code=result.exit_code, stderr=result.stderr
        )

    logger.debug("Command finished in %.2fs: %s", result.duration, command)
    return result


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
