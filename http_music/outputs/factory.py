import logging
import shutil
from typing import List, Optional

from .base_player import BasePlayer
from .mpv_player import MPVPlayer
from .null_player import NullPlayer
from .sox_player import SoxPlayer

logger = logging.getLogger(__name__)

PLAYER_NAMES = ("mpv", "sox", "play", "none")


def determine_default_player() -> str:
    """Pick the best installed player: mpv, then SoX's play, else none."""
    if shutil.which("mpv"):
        return "mpv"
    if shutil.which("play"):
        return "sox"
    logger.warning("[PLAYER] Neither mpv nor play (SoX) found on PATH; nothing will be heard")
    return "none"


def create_player(name: Optional[str] = None, play_opts: Optional[List[str]] = None) -> BasePlayer:
    """
    Create a player backend by name.

    Args:
        name: "mpv" | "sox" (or "play") | "none"; detected when None or "auto"
        play_opts: Extra arguments passed to the player before the file path

    Returns:
        BasePlayer instance. An unknown name gives a NullPlayer (with a warning).
    """
    if not name or name == "auto":
        name = determine_default_player()

    name = name.lower()

    if name == "mpv":
        return MPVPlayer(play_opts)

    if name in ("sox", "play"):
        return SoxPlayer(play_opts)

    if name != "none":
        logger.warning(f"[PLAYER] Unknown player: {name} (must be one of: {', '.join(PLAYER_NAMES)})")

    # Default: play nothing, everything else still runs
    return NullPlayer(play_opts)
