import asyncio
import logging
from typing import List, Optional

from http_music.outputs.base_player import BasePlayer

logger = logging.getLogger(__name__)


class NullPlayer(BasePlayer):
    """
    Player that plays nothing.

    Used when the configured player name is unknown or no player is installed.
    A track "plays" silently until it is stopped (skip or quit), so the rest of
    the app keeps running without spinning through the playlist.
    """

    name = "none"

    def __init__(self, play_opts: Optional[List[str]] = None):
        super().__init__(play_opts)
        self._stopped: Optional[asyncio.Event] = None

    def build_command(self, path: str) -> List[str]:
        return []

    @property
    def is_playing(self) -> bool:
        return self._stopped is not None and not self._stopped.is_set()

    async def play(self, path: str) -> int:
        logger.debug(f"[PLAYER] No player configured, not playing {path}")
        self._stopped = asyncio.Event()
        await self._stopped.wait()
        return 0

    async def stop(self) -> None:
        if self._stopped is not None:
            self._stopped.set()
