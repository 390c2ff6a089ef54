"""
Command runner - Executes external commands (heroku, git) and captures stdout.
"""

import asyncio
import logging
import shlex
from pathlib import Path
from typing import Optional, Sequence, Union

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


class CommandError(Exception):
    """An external command exited unsuccessfully or could not be started."""

    def __init__(
        self,
        command: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if message is None:
            message = f"command '{command}' failed with status {returncode}"
            if stderr.strip():
                message = f"{message}: {stderr.strip()}"
        super().__init__(message)


def _split(command: Command) -> list:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


async def run_command(
    command: Command,
    timeout: Optional[float] = None,
    cwd: Optional[Union[str, Path]] = None,
) -> str:
    """
    Run a command to completion and return its stdout.

    The command is split like a shell would but is not run through one.

    Args:
        command: Command line string or argument list.
        timeout: Seconds to wait before killing the process (None = no limit).
        cwd: Directory to run in (None = current directory).

    Returns:
        Decoded stdout.

    Raises:
        CommandError: If the command cannot be started, times out, exits
            non-zero or prints output that is not valid UTF-8.
    """
    argv = _split(command)
    display = shlex.join(argv)
    if cwd is not None:
        logger.info(f"Executing '{display}' in '{cwd}'")
    else:
        logger.info(f"Executing '{display}'")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        raise CommandError(display, message=f"could not run '{display}': {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandError(
            display, message=f"command '{display}' timed out after {timeout}s"
        ) from None

    err_text = stderr.decode(errors="replace")
    if err_text.strip():
        logger.debug(f"'{display}' stderr: {err_text.strip()}")

    if process.returncode != 0:
        raise CommandError(display, process.returncode, err_text)

    try:
        return stdout.decode()
    except UnicodeDecodeError as e:
        raise CommandError(
            display,
            process.returncode,
            message=f"command '{display}' printed output that is not valid UTF-8: {e}",
        ) from e
