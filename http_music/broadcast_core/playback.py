"""
Playback controller for http-music.

Drives one player process at a time:

    Idle -> Playing(resource) -> Idle

Signals:
- started(resource): the player is about to start on ``resource``
- finished(resource): the player process for ``resource`` has exited (for any
  reason, including a skip or a failure)

Transport controls go through the backend's control channel when it has one
and are ignored otherwise.
"""

import logging
from typing import Optional

from http_music.broadcast_core.downloaders import Resource
from http_music.broadcast_core.signals import Signal
from http_music.outputs.base_player import BasePlayer

logger = logging.getLogger(__name__)


class PlaybackError(Exception):
    """The player process exited non-zero or could not be started."""

    def __init__(self, path: str, returncode: Optional[int], message: Optional[str] = None):
        self.path = path
        self.returncode = returncode
        super().__init__(message or f"Player exited with code {returncode} ({path})")


class PlaybackController:
    """Plays resources through a player backend, one at a time."""

    def __init__(self, player: BasePlayer):
        self.player = player
        self.started = Signal("started")
        self.finished = Signal("finished")
        self.current: Optional[Resource] = None
        self._skipping = False

    @property
    def is_playing(self) -> bool:
        return self.current is not None

    async def play(self, resource: Resource) -> None:
        """
        Play ``resource`` until the player exits.

        A player stopped by skip_current() or stop() counts as a normal finish.

        Raises:
            RuntimeError: If something is already playing
            PlaybackError: If the player exits non-zero or isn't installed
        """
        if self.current is not None:
            raise RuntimeError("Playback already in progress")

        self.current = resource
        self._skipping = False
        logger.info(f"[PLAYBACK] Playing {resource.path}")
        self.started.emit(resource)

        try:
            returncode = await self.player.play(resource.path)
        except FileNotFoundError as e:
            raise PlaybackError(resource.path, None, f"Player not found: {e}") from e
        finally:
            self.current = None
            self.finished.emit(resource)

        if self._skipping:
            logger.debug(f"[PLAYBACK] Stopped {resource.path} (code {returncode})")
            return
        if returncode != 0:
            raise PlaybackError(resource.path, returncode)
        logger.debug(f"[PLAYBACK] Finished {resource.path}")

    def _can_control(self, action: str) -> bool:
        if not self.is_playing:
            return False
        if not self.player.has_control_channel:
            logger.debug(f"[PLAYBACK] {self.player.name} has no control channel, ignoring {action}")
            return False
        return True

    async def toggle_pause(self) -> None:
        if self._can_control("pause"):
            await self.player.toggle_pause()

    async def seek_by(self, seconds: float) -> None:
        if self._can_control("seek"):
            await self.player.seek_by(seconds)

    async def volume_by(self, delta: int) -> None:
        if self._can_control("volume"):
            await self.player.volume_by(delta)

    async def skip_current(self) -> None:
        """Stop the active player; play() then returns normally."""
        if not self.is_playing:
            return
        logger.info(f"[PLAYBACK] Skipping {self.current.path}")
        self._skipping = True
        await self.player.stop()

    async def stop(self) -> None:
        if self.is_playing:
            self._skipping = True
            await self.player.stop()
