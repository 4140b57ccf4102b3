import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from http_music.broadcast_core.processes import spawn, terminate_process

logger = logging.getLogger(__name__)


class BasePlayer(ABC):
    """
    Abstract base class for player backends.

    A backend runs one external player process per track. Backends with a
    control channel override the transport methods; the defaults ignore the
    call, since a missing channel is a capability gap and not an error.
    """

    name = "base"
    has_control_channel = False

    def __init__(self, play_opts: Optional[List[str]] = None):
        self.play_opts = list(play_opts or [])
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stop_requested = False

    @abstractmethod
    def build_command(self, path: str) -> List[str]:
        """
        Build the player command line for ``path``.

        Args:
            path: Local file to play
        """
        ...

    @property
    def is_playing(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def play(self, path: str) -> int:
        """
        Play ``path`` and wait for the player to exit.

        Returns:
            The player's exit code

        Raises:
            FileNotFoundError: If the player executable doesn't exist
        """
        self._stop_requested = False
        self._process = None
        cmd = self.build_command(path)
        logger.debug(f"[PLAYER] Starting {' '.join(cmd)}")
        self._process = await spawn(cmd)
        if self._stop_requested:
            # stop() arrived while the process was being spawned
            logger.debug(f"[PLAYER] Stop requested during startup (pid={self._process.pid})")
            await terminate_process(self._process)
        else:
            await self.on_started()
        try:
            return await self._process.wait()
        finally:
            await self.on_stopped()

    async def stop(self) -> None:
        """Stop the active player process, or the one currently being spawned."""
        self._stop_requested = True
        if self._process is not None:
            await terminate_process(self._process)

    async def on_started(self) -> None:
        pass

    async def on_stopped(self) -> None:
        pass

    async def toggle_pause(self) -> None:
        pass

    async def seek_by(self, seconds: float) -> None:
        pass

    async def volume_by(self, delta: int) -> None:
        pass
