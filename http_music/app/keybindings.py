"""
Interactive command surface.

Keybindings are lists ``[keys, command, *args]`` where ``keys`` is a list of
key parts:
- a named key ("space", "esc", "up", "shiftLeft", "delete", ...)
- a single character ("s")
- a raw byte value (0x03)

compile_keybindings() turns them into a lookup from the exact input bytes of
one keypress to ``(command, args)``.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from http_music.constants import LARGE_SEEK_SECONDS, SMALL_SEEK_SECONDS, VOLUME_STEP

logger = logging.getLogger(__name__)

KeyPart = Union[str, int]
Keybinding = List[Any]
CommandCall = Tuple[str, Tuple[Any, ...]]

# name -> (display name, input bytes)
NAMED_KEYS: Dict[str, Tuple[str, bytes]] = {
    "space": ("Space", b" "),
    "esc": ("Escape", b"\x1b"),
    "escape": ("Escape", b"\x1b"),
    "up": ("Up", b"\x1b[A"),
    "down": ("Down", b"\x1b[B"),
    "right": ("Right", b"\x1b[C"),
    "left": ("Left", b"\x1b[D"),
    "shiftUp": ("Shift+Up", b"\x1b[1;2A"),
    "shiftDown": ("Shift+Down", b"\x1b[1;2B"),
    "shiftRight": ("Shift+Right", b"\x1b[1;2C"),
    "shiftLeft": ("Shift+Left", b"\x1b[1;2D"),
    "delete": ("Backspace", b"\x7f"),
    "backspace": ("Backspace", b"\x7f"),
}

COMMAND_NAMES = (
    "toggle_pause",
    "seek",
    "volume",
    "skip_current",
    "skip_upcoming",
    "show_track_info",
    "quit",
)


def _letter(char: str, command: str, *args: Any) -> List[Keybinding]:
    return [[[char.lower()], command, *args], [[char.upper()], command, *args]]


DEFAULT_KEYBINDINGS: List[Keybinding] = [
    [["space"], "toggle_pause"],
    [["right"], "seek", SMALL_SEEK_SECONDS],
    [["left"], "seek", -SMALL_SEEK_SECONDS],
    [["shiftRight"], "seek", LARGE_SEEK_SECONDS],
    [["shiftLeft"], "seek", -LARGE_SEEK_SECONDS],
    [["up"], "volume", VOLUME_STEP],
    [["down"], "volume", -VOLUME_STEP],
    *_letter("s", "skip_current"),
    [["delete"], "skip_upcoming"],
    *_letter("i", "show_track_info"),
    *_letter("t", "show_track_info"),
    *_letter("q", "quit"),
    [[0x03], "quit"],  # ^C
    [[0x04], "quit"],  # ^D
]


def _part_bytes(part: KeyPart) -> Optional[bytes]:
    if isinstance(part, int) and 0 <= part <= 0xFF:
        return bytes([part])
    if isinstance(part, str):
        if part in NAMED_KEYS:
            return NAMED_KEYS[part][1]
        if len(part) == 1:
            return part.encode("utf-8")
    return None


def compile_keybindings(
    bindings: Iterable[Keybinding],
    commands: Sequence[str] = COMMAND_NAMES,
) -> Dict[bytes, CommandCall]:
    """
    Compile keybindings into an input-bytes lookup.

    Bindings naming an unknown command or containing an invalid key part are
    warned about and dropped. When two bindings share a combo the first wins.

    Args:
        bindings: Keybindings ``[keys, command, *args]``
        commands: Command names accepted

    Returns:
        Mapping of exact keypress bytes to ``(command, args)``
    """
    compiled: Dict[bytes, CommandCall] = {}
    for binding in bindings:
        keys, command, *args = binding

        if command not in commands:
            logger.warning(f"[KEYS] Invalid command {command} in keybinding {binding}")
            continue

        parts = [_part_bytes(part) for part in keys]
        if any(part is None for part in parts):
            logger.warning(f"[KEYS] Invalid keybinding part in keybinding {binding}")
            continue

        compiled.setdefault(b"".join(parts), (command, tuple(args)))
    return compiled


def lookup_command(compiled: Dict[bytes, CommandCall], data: bytes) -> Optional[CommandCall]:
    return compiled.get(data)


def get_combo_for_command(command: str, bindings: Iterable[Keybinding]) -> Optional[List[KeyPart]]:
    for binding in bindings:
        if binding[1] == command:
            return binding[0]
    return None


def stringify_combo(combo: Sequence[KeyPart]) -> str:
    """Render a combo for help text, e.g. ["shiftLeft"] -> "Shift+Left"."""
    rendered = []
    for item in combo:
        if isinstance(item, str):
            if len(item) == 1:
                rendered.append(item.upper())
            elif item in NAMED_KEYS:
                rendered.append(NAMED_KEYS[item][0])
            else:
                rendered.append(item)
        else:
            rendered.append(repr(item))
    return "+".join(rendered)
