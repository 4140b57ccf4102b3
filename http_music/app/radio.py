"""
Main entry point for http-music.

This module provides the command-line entry point. It handles:
- Command-line argument parsing
- Logging configuration (interactive vs. headless)
- Configuration loading (.env file and environment variables)
- Opening the playlist and applying playlist options
- Building the history, acquisition and playback controllers
- Keyboard controls in interactive mode
- Graceful shutdown on q / Ctrl+C / SIGTERM

Example:
    ```bash
    # Interactive mode with keyboard controls
    python -m http_music --interactive --open jazz.json

    # Ordered, no loop, with trailing playlist options
    python -m http_music --sort ordered --loop no-loop -- -k "Jazz/Bebop/"
    ```
"""

import argparse
import asyncio
import logging
import logging.handlers
import shlex
import signal
import sys
from typing import List, Optional, Set

from http_music.app.keybindings import DEFAULT_KEYBINDINGS, compile_keybindings, get_combo_for_command, stringify_combo
from http_music.app.orchestrator import Orchestrator
from http_music.app.terminal import KeyReader
from http_music.broadcast_core.downloaders import DownloaderRegistry
from http_music.broadcast_core.playback import PlaybackController
from http_music.config import PlayerConfig
from http_music.constants import APP_NAME, LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES
from http_music.music_logic.history import LOOP_MODES, HistoryController, create_picker_state
from http_music.music_logic.sequencer import SORT_MODES, PickerConfigError
from http_music.outputs.factory import create_player
from http_music.playlist.options import PlaylistSession
from http_music.playlist.playlist_file import PlaylistError

logger = logging.getLogger(__name__)


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'


class ColoredFormatter(logging.Formatter):
    """
    Logging formatter with colors for interactive console output.

    The terminal is in raw mode while keys are being read, so every line ends
    with an explicit carriage return.
    """

    COLORS = {
        'DEBUG': Colors.DIM + Colors.WHITE,
        'INFO': Colors.CYAN,
        'WARNING': Colors.YELLOW,
        'ERROR': Colors.RED,
        'CRITICAL': Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        msg = record.getMessage().replace("\n", "\r\n")
        levelname = record.levelname

        if levelname == 'INFO' and 'Now playing:' in msg:
            track_name = msg.split('Now playing: ', 1)[1]
            return f"{Colors.GREEN}▶ {Colors.RESET}{Colors.BOLD}{track_name}{Colors.RESET}\r"
        if levelname == 'WARNING':
            return f"{Colors.YELLOW}⚠ {msg}{Colors.RESET}\r"
        if levelname in ('ERROR', 'CRITICAL'):
            return f"{self.COLORS[levelname]}✗ {msg}{Colors.RESET}\r"
        if levelname == 'INFO':
            return f"{msg}\r"
        return f"{self.COLORS.get(levelname, '')}{levelname}{Colors.RESET} {msg}\r"


def setup_logging(interactive: bool = False, log_file: Optional[str] = None, level: str = "INFO") -> None:
    """
    Configure logging for the application.

    Args:
        interactive: Colored, message-only console output instead of timestamps
        log_file: Also log to this file, rotating at 10MB with 5 backups
        level: Root log level name
    """
    handlers = []

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    if interactive:
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    handlers.append(console_handler)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class QuitScheduler:
    """Signal handler that runs orchestrator.quit() as a tracked task."""

    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator
        self.tasks: Set[asyncio.Task] = set()

    def __call__(self) -> None:
        task = asyncio.get_running_loop().create_task(self.orchestrator.quit())
        self.tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self.tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[ORCHESTRATOR] Quit failed: {task.exception()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description='Play an endless sequence of tracks from a playlist tree',
        epilog='Any other arguments are playlist options (try -- --help).',
        allow_abbrev=False,
    )
    parser.add_argument(
        '--interactive', '-i',
        action='store_true',
        help='Enable keyboard controls (space, arrows, s, delete, i, q)'
    )
    parser.add_argument('--player', help='Player backend: mpv, sox or none')
    parser.add_argument('--sort', choices=SORT_MODES, help='Sort mode')
    parser.add_argument('--loop', choices=LOOP_MODES, help='Loop mode')
    parser.add_argument('--seed', type=int, help='Seed for the shuffle modes')
    parser.add_argument('--play-opts', help='Extra arguments passed to the player (use --play-opts=...)')
    return parser


def print_controls() -> None:
    controls = [
        ("toggle_pause", "Pause / resume"),
        ("seek", "Seek"),
        ("volume", "Volume"),
        ("skip_current", "Skip current track"),
        ("skip_upcoming", "Skip upcoming track"),
        ("show_track_info", "Track info"),
        ("quit", "Quit"),
    ]
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  {APP_NAME} - Interactive Mode{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}")
    for command, label in controls:
        combo = get_combo_for_command(command, DEFAULT_KEYBINDINGS)
        if combo is not None:
            print(f"  {Colors.GREEN}[{stringify_combo(combo)}]{Colors.RESET} - {label}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}\n")


async def run(args: argparse.Namespace, playlist_options: List[str], config: PlayerConfig) -> int:
    session = PlaylistSession(
        sort_mode=config.sort_mode,
        loop_mode=config.loop_mode,
        seed=config.seed,
        player=config.player,
        timeout=config.download_timeout,
    )

    try:
        await session.open(config.playlist)
    except PlaylistError as e:
        logger.debug(f"[PLAYLIST] Default playlist not opened: {e}")
    except PickerConfigError as e:
        logger.error(f"[PLAYLIST] {e}")
        return 1

    try:
        await session.apply_options(playlist_options)
    except (PlaylistError, PickerConfigError) as e:
        logger.error(f"[PLAYLIST] {e}")
        return 1

    # Flags win over playlist options
    if args.sort:
        session.sort_mode = args.sort
    if args.loop:
        session.loop_mode = args.loop
    if args.seed is not None:
        session.seed = args.seed
    if args.player:
        session.player = args.player
    if args.play_opts:
        session.play_opts = shlex.split(args.play_opts)

    if session.active is None:
        logger.error("[PLAYLIST] Cannot play - no open playlist. Try --open <playlist file>?")
        return 1

    if not session.play_requested:
        return 0

    try:
        picker_state = create_picker_state(session.sort_mode, session.loop_mode, session.seed)
    except PickerConfigError as e:
        logger.error(f"[ORCHESTRATOR] {e}")
        return 1

    logger.info(
        f"[ORCHESTRATOR] Sort: {picker_state.sort_mode}, loop: {picker_state.loop_mode}, "
        f"seed: {picker_state.seed}"
    )

    history = HistoryController(session.active, picker_state, fill_size=config.fill_size)
    player = create_player(session.player, session.play_opts)
    logger.info(f"[PLAYER] Using {player.name} player")
    orchestrator = Orchestrator(
        history=history,
        playback=PlaybackController(player),
        downloaders=DownloaderRegistry(
            timeout=config.download_timeout,
            temp_root=config.temp_dir,
            convert=config.convert,
        ),
    )

    loop = asyncio.get_running_loop()
    quit_scheduler = QuitScheduler(orchestrator)
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, quit_scheduler)

    key_reader = None
    if args.interactive:
        key_reader = KeyReader(compile_keybindings(DEFAULT_KEYBINDINGS), orchestrator.handle_command)
        if not key_reader.start():
            key_reader = None

    try:
        await orchestrator.run()
    finally:
        if key_reader is not None:
            key_reader.stop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(signum)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run http-music.

    Returns:
        Process exit code
    """
    parser = build_parser()
    args, playlist_options = parser.parse_known_args(argv)
    if playlist_options[:1] == ["--"]:
        playlist_options = playlist_options[1:]

    try:
        config = PlayerConfig.load_config()
    except ValueError as e:
        setup_logging(interactive=args.interactive)
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(interactive=args.interactive, log_file=config.log_file, level=config.log_level)

    if args.interactive:
        print_controls()

    try:
        return asyncio.run(run(args, playlist_options, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down...")
        return 130
