"""
Subprocess helpers shared by downloaders, converters and player backends.

Every child runs in its own session (process group) so that stopping it also
stops anything it spawned, and so that Ctrl-C in the terminal doesn't reach it
directly.
"""

import asyncio
import logging
import os
import signal
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_SECONDS = 2.0


async def spawn(cmd: List[str], capture_output: bool = False) -> asyncio.subprocess.Process:
    """
    Start ``cmd`` in a new session.

    Args:
        cmd: Command and arguments
        capture_output: Pipe stdout/stderr instead of discarding them

    Raises:
        FileNotFoundError: If the executable doesn't exist
    """
    stream = asyncio.subprocess.PIPE if capture_output else asyncio.subprocess.DEVNULL
    return await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=stream,
        stderr=stream,
        start_new_session=True,
    )


async def run_process(cmd: List[str]) -> str:
    """
    Run ``cmd`` to completion.

    Returns:
        Captured stderr text (useful for error messages)

    Raises:
        ProcessFailed: If the process exits non-zero
        FileNotFoundError: If the executable doesn't exist
    """
    proc = await spawn(cmd, capture_output=True)
    try:
        _, stderr = await proc.communicate()
    except asyncio.CancelledError:
        await terminate_process(proc)
        raise
    text = stderr.decode("utf-8", errors="replace") if stderr else ""
    if proc.returncode != 0:
        raise ProcessFailed(cmd, proc.returncode, text)
    return text


class ProcessFailed(Exception):
    """A helper process exited with a non-zero code."""

    def __init__(self, cmd: List[str], returncode: Optional[int], stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        super().__init__(f"{cmd[0]} exited with code {returncode}" + (f": {detail}" if detail else ""))


async def terminate_process(
    proc: asyncio.subprocess.Process,
    grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS,
) -> None:
    """
    Stop ``proc`` and its process group.

    Sends SIGTERM to the group, waits up to ``grace_period_seconds``, then
    SIGKILL. Safe to call on a process that already exited.
    """
    if proc.returncode is not None:
        logger.debug(f"[PROCESS] Process already exited (pid={proc.pid})")
        return

    try:
        pgid = os.getpgid(proc.pid)
        os.killpg(pgid, signal.SIGTERM)
        logger.debug(f"[PROCESS] SIGTERM sent (pid={proc.pid}, pgid={pgid})")
    except ProcessLookupError:
        logger.debug(f"[PROCESS] Process already exited (pid={proc.pid})")
        return

    try:
        await asyncio.wait_for(proc.wait(), timeout=grace_period_seconds)
        return
    except asyncio.TimeoutError:
        logger.warning(f"[PROCESS] SIGKILL sent (timeout exceeded, pid={proc.pid}, pgid={pgid})")

    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        return
    await proc.wait()
