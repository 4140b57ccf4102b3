"""
Orchestrator for http-music.

Wires History -> Acquisition -> Playback:

1. Ask the history controller for the next pick and start acquiring it.
2. Play the acquired resource. As soon as playback starts, pick and start
   acquiring the track after it, so it is ready when the current one ends.
3. When playback ends, clean up the finished resource (unless the next track
   resolved to the same file) and play whatever was acquired in the meantime.

The "upcoming" track moves through an explicit state machine:

    IDLE -> ACQUIRING -> READY -> IDLE (claimed for playback)
                      -> FAILED -> ACQUIRING (fresh pick)
    any  -> EXHAUSTED (history returned no pick)

A failed acquisition is never retried; it is logged and replaced by a fresh
pick, exactly as if the user had skipped it.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from http_music.broadcast_core.acquisition import AcquisitionController
from http_music.broadcast_core.downloaders import AcquisitionError, DownloaderRegistry, Resource, delete_resource
from http_music.broadcast_core.playback import PlaybackController, PlaybackError
from http_music.music_logic.history import HistoryController
from http_music.playlist.grouplike import Occurrence, Track, flatten

logger = logging.getLogger(__name__)


class UpcomingState(Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    READY = "ready"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


def format_duration(seconds: float) -> str:
    """Format seconds as m:ss."""
    total = int(round(seconds))
    return f"{total // 60}:{total % 60:02d}"


def describe_track(track: Track) -> str:
    lines = [f"  {track.name or '(unnamed)'}", f"  - {track.downloader_arg}"]
    metadata = track.metadata
    if metadata is not None:
        if metadata.duration_seconds is not None:
            lines.append(f"  - Duration: {format_duration(metadata.duration_seconds)}")
        if metadata.bitrate is not None:
            lines.append(f"  - Bitrate: {metadata.bitrate}")
        if metadata.size_bytes is not None:
            lines.append(f"  - Size: {metadata.size_bytes} bytes")
    return "\n".join(lines)


class Orchestrator:
    """
    Runs the play loop and routes interactive commands.

    Args:
        history: Source of picks
        playback: Playback controller bound to a player backend
        downloaders: Resolves tracks to downloaders
        acquisition: Acquisition controller (a fresh one when None)
    """

    def __init__(
        self,
        history: HistoryController,
        playback: PlaybackController,
        downloaders: DownloaderRegistry,
        acquisition: Optional[AcquisitionController] = None,
    ):
        self.history = history
        self.playback = playback
        self.downloaders = downloaders
        self.acquisition = acquisition or AcquisitionController()

        self.upcoming_state = UpcomingState.IDLE
        self.upcoming_pick: Optional[Occurrence] = None
        self.current_pick: Optional[Occurrence] = None

        self._stopping = False
        self._waiter: Optional[asyncio.Future] = None
        self._consecutive_failures = 0
        self._max_consecutive_failures = max(len(flatten(history.tree)), 1)

        self.acquisition.acquired.connect(self._on_acquired)
        self.acquisition.failed.connect(self._on_acquisition_failed)
        self.playback.started.connect(self._on_playback_started)

        self.commands: Dict[str, Callable[..., Any]] = {
            "toggle_pause": self.playback.toggle_pause,
            "seek": self.playback.seek_by,
            "volume": self.playback.volume_by,
            "skip_current": self.skip_current,
            "skip_upcoming": self.skip_upcoming,
            "show_track_info": self.show_track_info,
            "quit": self.quit,
        }

    # State machine edges

    def _acquire_next(self) -> None:
        pick = self.history.advance()
        self.upcoming_pick = pick
        if pick is None:
            self.upcoming_state = UpcomingState.EXHAUSTED
            return

        track = pick.track
        try:
            downloader = self.downloaders.get_downloader_for(track.downloader_arg, track.downloader)
        except AcquisitionError as e:
            error = e

            # Report through the acquisition controller like any other failure
            async def downloader(arg: str) -> Resource:
                raise error

        self.upcoming_state = UpcomingState.ACQUIRING
        self.acquisition.start(downloader, track.downloader_arg)

    def _on_acquired(self, resource: Resource) -> None:
        self._consecutive_failures = 0
        self.upcoming_state = UpcomingState.READY

    def _on_acquisition_failed(self, error: AcquisitionError) -> None:
        self.upcoming_state = UpcomingState.FAILED
        self._consecutive_failures += 1
        logger.error(f"[ORCHESTRATOR] Skipping track that couldn't be acquired: {error}")

        if self._stopping:
            return
        if self._consecutive_failures >= self._max_consecutive_failures:
            logger.error(f"[ORCHESTRATOR] {self._consecutive_failures} acquisitions in a row failed, giving up")
            self.upcoming_pick = None
            self.upcoming_state = UpcomingState.EXHAUSTED
            return
        self._acquire_next()

    def _on_playback_started(self, resource: Resource) -> None:
        if self.current_pick is not None:
            logger.info(f"[ORCHESTRATOR] Now playing: {self.current_pick.track.name}")
        if self.upcoming_state == UpcomingState.IDLE and not self._stopping:
            self._acquire_next()

    # Play loop

    async def _wait_for_upcoming(self) -> Optional[Resource]:
        self._waiter = asyncio.ensure_future(self.acquisition.await_result())
        try:
            return await self._waiter
        except asyncio.CancelledError:
            if self._stopping:
                return None
            raise
        finally:
            self._waiter = None

    async def _cleanup(self, finished: Optional[Resource], following: Optional[Resource]) -> None:
        if finished is None:
            return
        if following is not None and following.path == finished.path:
            logger.debug(f"[ORCHESTRATOR] Keeping {finished.path}, it plays again next")
            return
        await delete_resource(finished)

    async def run(self) -> None:
        """Play until the history runs out or quit() is called."""
        previous: Optional[Resource] = None
        self._acquire_next()
        try:
            while not self._stopping:
                if self.upcoming_state == UpcomingState.EXHAUSTED:
                    logger.info("[ORCHESTRATOR] Nothing left to play")
                    break

                try:
                    resource = await self._wait_for_upcoming()
                except AcquisitionError:
                    # Only reached once repeated failures have exhausted the playlist
                    continue
                if resource is None:
                    break

                self.current_pick = self.upcoming_pick
                self.upcoming_pick = None
                self.upcoming_state = UpcomingState.IDLE

                await self._cleanup(previous, resource)
                previous = resource
                if self._stopping:
                    break

                try:
                    await self.playback.play(resource)
                except PlaybackError as e:
                    logger.error(f"[ORCHESTRATOR] {e}")
        finally:
            await self._cleanup(previous, None)
            await self.acquisition.shutdown()
            logger.info("[ORCHESTRATOR] Stopped")

    # Commands

    async def handle_command(self, name: str, *args: Any) -> None:
        command = self.commands.get(name)
        if command is None:
            logger.warning(f"[ORCHESTRATOR] Unknown command: {name}")
            return
        await command(*args)

    async def skip_current(self) -> None:
        logger.info("[ORCHESTRATOR] Skipping the track that's currently playing")
        await self.playback.skip_current()

    async def skip_upcoming(self) -> None:
        """Replace the upcoming track with a fresh pick; current playback continues."""
        if self.upcoming_state not in (UpcomingState.ACQUIRING, UpcomingState.READY):
            logger.info("[ORCHESTRATOR] No upcoming track to skip")
            return
        logger.info("[ORCHESTRATOR] Skipping the track that's up next")
        self.acquisition.cancel()
        self._acquire_next()

    async def show_track_info(self) -> None:
        if self.current_pick is not None:
            logger.info("[ORCHESTRATOR] Current track:\n" + describe_track(self.current_pick.track))
        if self.upcoming_pick is not None:
            logger.info("[ORCHESTRATOR] Next track:\n" + describe_track(self.upcoming_pick.track))

    async def quit(self) -> None:
        """Stop playback and acquisition; run() returns once cleanup is done."""
        if self._stopping:
            return
        logger.info("[ORCHESTRATOR] Quitting")
        self._stopping = True
        if self._waiter is not None:
            self._waiter.cancel()
        await self.playback.stop()

