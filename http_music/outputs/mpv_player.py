"""
mpv backend.

mpv is started with a JSON IPC socket (--input-ipc-server) which serves as
the control channel for pause, seek and volume.
"""

import asyncio
import json
import logging
import os
import tempfile
from typing import List, Optional

from http_music.outputs.base_player import BasePlayer

logger = logging.getLogger(__name__)

SOCKET_CONNECT_ATTEMPTS = 20
SOCKET_RETRY_DELAY_SECONDS = 0.05


class MPVPlayer(BasePlayer):
    """Full-control backend: mpv with a JSON IPC socket."""

    name = "mpv"
    has_control_channel = True

    def __init__(self, play_opts: Optional[List[str]] = None, executable: str = "mpv"):
        super().__init__(play_opts)
        self.executable = executable
        self.socket_path = os.path.join(tempfile.gettempdir(), f"http-music-mpv-{os.getpid()}.sock")
        self._writer: Optional[asyncio.StreamWriter] = None

    def build_command(self, path: str) -> List[str]:
        return [
            self.executable,
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            *self.play_opts,
            path,
        ]

    async def _connect(self) -> Optional[asyncio.StreamWriter]:
        if self._writer is not None:
            return self._writer
        # mpv creates the socket shortly after it starts
        for _ in range(SOCKET_CONNECT_ATTEMPTS):
            if not self.is_playing:
                return None
            try:
                _, self._writer = await asyncio.open_unix_connection(self.socket_path)
                return self._writer
            except (FileNotFoundError, ConnectionRefusedError):
                await asyncio.sleep(SOCKET_RETRY_DELAY_SECONDS)
        logger.warning(f"[PLAYER] Could not connect to mpv control socket {self.socket_path}")
        return None

    async def send_command(self, *command) -> None:
        """Send one IPC command (e.g. ``"seek", 5, "relative"``) to mpv."""
        writer = await self._connect()
        if writer is None:
            return
        try:
            writer.write((json.dumps({"command": list(command)}) + "\n").encode("utf-8"))
            await writer.drain()
        except (ConnectionError, OSError) as e:
            logger.warning(f"[PLAYER] mpv command {command[0]} failed: {e}")
            await self._close_writer()

    async def _close_writer(self) -> None:
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass

    async def on_stopped(self) -> None:
        await self._close_writer()

    async def toggle_pause(self) -> None:
        await self.send_command("cycle", "pause")

    async def seek_by(self, seconds: float) -> None:
        await self.send_command("seek", seconds, "relative")

    async def volume_by(self, delta: int) -> None:
        await self.send_command("add", "volume", delta)
