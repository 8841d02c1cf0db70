"""
External command execution for the gitdeploy application.

:author: Christopher O'Brien <obriencj@preoccupied.net>
:license: GNU General Public License v3
"""

import asyncio
import logging
from typing import Optional

from .errors import CommandError


logger = logging.getLogger(__name__)


async def run(
        *args: str,
        cwd: Optional[str] = None,
        capture: bool = True) -> str:
    """
    Run a command once and wait for it to exit.

    With capture enabled, stdout and stderr are merged into a single
    buffer and returned stripped. Otherwise the child writes straight
    to our own streams and the empty string is returned.

    Raises CommandError on a non-zero exit or when the command cannot
    be started at all.
    """

    logger.debug(f'Running {args} in {cwd}')

    if capture:
        stdout, stderr = asyncio.subprocess.PIPE, asyncio.subprocess.STDOUT
    else:
        stdout = stderr = None

    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdout=stdout,
            stderr=stderr
        )
    except OSError as e:
        raise CommandError(-1, args, output=str(e)) from e

    output, _ = await process.communicate()
    output = output.decode('utf-8', errors='replace').strip() if output else ''

    if process.returncode != 0:
        raise CommandError(process.returncode, args, output=output)

    return output


async def run_shell(command: str, cwd: Optional[str] = None, capture: bool = True) -> str:
    """
    Run a shell command line through bash.
    """

    return await run('bash', '-c', command, cwd=cwd, capture=capture)


# The end.
