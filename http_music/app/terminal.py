"""
Raw-mode keyboard reader for interactive mode.

Puts the terminal in raw mode so single keystrokes (including escape
sequences for arrow keys) arrive without Enter, and feeds each read to a
command handler on the event loop. Terminal settings are restored on exit.
"""

import asyncio
import logging
import os
import sys
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from http_music.app.keybindings import CommandCall, lookup_command

logger = logging.getLogger(__name__)

CommandHandler = Callable[..., Awaitable[Any]]


class KeyReader:
    """
    Reads keypresses from stdin and dispatches compiled keybindings.

    Args:
        keybindings: Output of compile_keybindings()
        handler: Coroutine function called as ``handler(command, *args)``
        stream: Input stream (stdin by default)
    """

    READ_SIZE = 64

    def __init__(self, keybindings: Dict[bytes, CommandCall], handler: CommandHandler, stream=None):
        self.keybindings = keybindings
        self.handler = handler
        self.stream = stream or sys.stdin
        self._fd: Optional[int] = None
        self._old_settings = None
        self._tasks: Set[asyncio.Task] = set()

    def start(self) -> bool:
        """
        Enter raw mode and start reading.

        Returns:
            False if stdin isn't a terminal (e.g. input is piped)
        """
        if not self.stream.isatty():
            logger.warning("[KEYS] User input cannot be read (stdin is not a terminal)")
            return False

        import termios
        import tty

        self._fd = self.stream.fileno()
        self._old_settings = termios.tcgetattr(self._fd)
        tty.setraw(self._fd)
        asyncio.get_running_loop().add_reader(self._fd, self._on_readable)
        return True

    def stop(self) -> None:
        if self._fd is None:
            return
        import termios

        asyncio.get_running_loop().remove_reader(self._fd)
        termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
        self._fd = None

    def _on_readable(self) -> None:
        data = os.read(self._fd, self.READ_SIZE)
        if not data:
            # EOF behaves like ^D
            data = b"\x04"
        self.feed(data)

    def feed(self, data: bytes) -> None:
        """Dispatch one keypress worth of input."""
        match = lookup_command(self.keybindings, data)
        if match is None:
            logger.debug(f"[KEYS] Unbound input {data!r}")
            return
        command, args = match
        task = asyncio.get_running_loop().create_task(self.handler(command, *args))
        self._tasks.add(task)
        task.add_done_callback(self._on_command_done)

    def _on_command_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[KEYS] Command failed: {task.exception()}")
