"""
http-music: plays an endless sequence of tracks from a nested playlist tree,
fetching the next track while the current one plays.
"""

from http_music.constants import VERSION

__version__ = VERSION
