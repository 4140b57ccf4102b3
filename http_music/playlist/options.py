"""
Playlist option processing.

The same option strings come from the command line and from an opened
playlist's "options" array. They are processed left to right against a
PlaylistSession, which holds the source playlist (as opened), the active
playlist (a deep copy that the options edit) and the playback settings.

Listing, printing or writing the playlist as the very last option means the
user most likely doesn't want anything played, unless --play forces it.
"""

import copy
import logging
import shlex
from typing import Callable, Dict, List, Optional

from http_music.music_logic.history import resolve_legacy_picker, validate_loop_mode
from http_music.music_logic.sequencer import validate_sort_mode
from http_music.playlist.grouplike import find_by_path_string, get_playlist_tree_string, remove_by_path_string
from http_music.playlist.playlist_file import PlaylistError, dumps_playlist, open_playlist, write_playlist

logger = logging.getLogger(__name__)

HELP_TEXT = """http-music - play an endless sequence of tracks from a playlist tree

  --open, -o <file>            Open a playlist file or http(s) URL
  --clear, -c                  Clear the active playlist
  --keep, -k <path>            Copy a group from the opened playlist into the active one
  --remove, -r, -x <path>      Remove a group from the active playlist
  --list-groups, --list, -l    List the groups of the active playlist
  --list-all, --list-tracks, -L
                               List every group and track
  --print-playlist, --json     Print the active playlist as JSON
  --write-playlist, --write, -w, --save <file>
                               Save the active playlist
  --play, -p / --no-play, -np  Force playback on or off
  --sort <mode>                ordered | alphabetical | shuffle-tracks | shuffle-groups
  --loop <mode>                loop | loop-same-order | loop-regenerate | no-loop | pick-random
  --picker <name>              Legacy picker name (ordered, shuffle, ...)
  --seed <n>                   Seed for the shuffle modes
  --player <name>              mpv | sox | none
  --play-opts <opts>           Extra arguments passed to the player
  --help, -h                   Show this message"""

# alias -> canonical option (leading "-" stripped once, as typed after it)
OPTION_ALIASES: Dict[str, str] = {
    "-open": "-open-playlist",
    "o": "-open-playlist",
    "c": "-clear",
    "k": "-keep",
    "r": "-remove",
    "x": "-remove",
    "-list": "-list-groups",
    "l": "-list-groups",
    "-list-tracks": "-list-all",
    "L": "-list-all",
    "-log-playlist": "-print-playlist",
    "-json": "-print-playlist",
    "-write": "-write-playlist",
    "w": "-write-playlist",
    "-save": "-write-playlist",
    "p": "-play",
    "np": "-no-play",
    "-selector": "-picker",
    "h": "-help",
    "?": "-help",
}


class _OptionCursor:
    """Position within one option list, shared with the handler being run."""

    def __init__(self, argv: List[str]):
        self.argv = argv
        self.index = 0

    def next_arg(self) -> str:
        option = self.argv[self.index]
        self.index += 1
        if self.index >= len(self.argv):
            raise PlaylistError(f"Option {option} needs an argument")
        return self.argv[self.index]

    def is_last(self) -> bool:
        return self.index == len(self.argv) - 1


class PlaylistSession:
    """
    State edited by playlist options.

    Attributes:
        source: Playlist as opened (never edited by options)
        active: Deep copy of ``source`` that --clear/--keep/--remove edit
        sort_mode, loop_mode, seed, player, play_opts: Playback settings
        output: Where listings and JSON are written
    """

    def __init__(
        self,
        sort_mode: str,
        loop_mode: str,
        seed: Optional[int] = None,
        player: Optional[str] = None,
        play_opts: Optional[List[str]] = None,
        timeout: float = 60.0,
        output: Callable[[str], None] = print,
    ):
        self.source = None
        self.active = None
        self.sort_mode = sort_mode
        self.loop_mode = loop_mode
        self.seed = seed
        self.player = player
        self.play_opts = list(play_opts or [])
        self.timeout = timeout
        self.output = output
        self.should_play = True
        self.will_play: Optional[bool] = None

        self._handlers = {
            "-open-playlist": self._open_playlist,
            "-clear": self._clear,
            "-keep": self._keep,
            "-remove": self._remove,
            "-list-groups": self._list_groups,
            "-list-all": self._list_all,
            "-print-playlist": self._print_playlist,
            "-write-playlist": self._write_playlist,
            "-play": self._play,
            "-no-play": self._no_play,
            "-picker": self._picker,
            "-sort": self._sort,
            "-loop": self._loop,
            "-seed": self._seed,
            "-player": self._player,
            "-play-opts": self._play_opts,
            "-help": self._help,
        }

    @property
    def play_requested(self) -> bool:
        if self.will_play is not None:
            return self.will_play
        return self.should_play

    async def apply_options(self, argv: List[str]) -> None:
        """
        Process option strings left to right.

        Arguments that don't start with "-" are skipped; unknown options are
        warned about and skipped.

        Raises:
            PlaylistError: If an option needs an open playlist or a missing argument
            PickerConfigError: For an invalid --sort, --loop or --picker value
        """
        cursor = _OptionCursor(list(argv))
        while cursor.index < len(cursor.argv):
            current = cursor.argv[cursor.index]
            if current.startswith("-"):
                await self._handle(current[1:], cursor)
            cursor.index += 1

    async def _handle(self, option: str, cursor: _OptionCursor) -> None:
        handler = self._handlers.get(OPTION_ALIASES.get(option, option))
        if handler is None:
            logger.warning(f"[PLAYLIST] Option not understood: -{option}")
            return
        await handler(cursor)

    async def open(self, arg: str) -> None:
        """Open ``arg`` as the source playlist and apply its own options."""
        playlist = await open_playlist(arg, self.timeout)
        self.source = playlist
        self.active = copy.deepcopy(playlist)
        if playlist.options:
            await self.apply_options(playlist.options)

    def _requires_open_playlist(self) -> None:
        if self.active is None:
            raise PlaylistError("This action requires an open playlist - try --open (file)")

    async def _open_playlist(self, cursor: _OptionCursor) -> None:
        await self.open(cursor.next_arg())

    async def _clear(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        self.active.items = []

    async def _keep(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        path_string = cursor.next_arg()
        node = find_by_path_string(self.source, path_string)
        if node is self.source:
            return
        self.active.items.append(copy.deepcopy(node))

    async def _remove(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        path_string = cursor.next_arg()
        logger.info(f"[PLAYLIST] Ignoring path: {path_string}")
        remove_by_path_string(self.active, path_string)

    async def _list_groups(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        self.output(get_playlist_tree_string(self.active))
        if cursor.is_last():
            self.should_play = False

    async def _list_all(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        self.output(get_playlist_tree_string(self.active, show_tracks=True))
        if cursor.is_last():
            self.should_play = False

    async def _print_playlist(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        self.output(dumps_playlist(self.active))
        if cursor.is_last():
            self.should_play = False

    async def _write_playlist(self, cursor: _OptionCursor) -> None:
        self._requires_open_playlist()
        write_playlist(self.active, cursor.next_arg())
        if cursor.is_last():
            self.should_play = False

    async def _play(self, cursor: _OptionCursor) -> None:
        self.will_play = True

    async def _no_play(self, cursor: _OptionCursor) -> None:
        self.will_play = False

    async def _picker(self, cursor: _OptionCursor) -> None:
        self.sort_mode, self.loop_mode = resolve_legacy_picker(cursor.next_arg())

    async def _sort(self, cursor: _OptionCursor) -> None:
        self.sort_mode = validate_sort_mode(cursor.next_arg())

    async def _loop(self, cursor: _OptionCursor) -> None:
        self.loop_mode = validate_loop_mode(cursor.next_arg())

    async def _seed(self, cursor: _OptionCursor) -> None:
        value = cursor.next_arg()
        try:
            seed = int(value)
        except ValueError:
            raise PlaylistError(f"Invalid seed: {value} (must be a non-negative integer)") from None
        if seed < 0:
            raise PlaylistError(f"Invalid seed: {value} (must be a non-negative integer)")
        self.seed = seed

    async def _player(self, cursor: _OptionCursor) -> None:
        self.player = cursor.next_arg()

    async def _play_opts(self, cursor: _OptionCursor) -> None:
        self.play_opts = shlex.split(cursor.next_arg())

    async def _help(self, cursor: _OptionCursor) -> None:
        self.output(HELP_TEXT)
        if cursor.is_last():
            self.should_play = False
