"""
Player backends for http-music.

Each backend runs one external player process per track.
"""

from .base_player import BasePlayer
from .mpv_player import MPVPlayer
from .null_player import NullPlayer
from .sox_player import SoxPlayer
from .factory import create_player, determine_default_player

__all__ = [
    "BasePlayer",
    "MPVPlayer",
    "NullPlayer",
    "SoxPlayer",
    "create_player",
    "determine_default_player",
]
