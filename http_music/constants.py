"""
Fixed constants for http-music.
"""

APP_NAME = "http-music"
VERSION = "0.1.0"

DEFAULT_PLAYLIST_FILE = "./playlist.json"
DEFAULT_ENV_FILE = "./.env"
DEFAULT_SORT_MODE = "shuffle-tracks"
DEFAULT_LOOP_MODE = "loop-regenerate"
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 60.0

SMALL_SEEK_SECONDS = 5
LARGE_SEEK_SECONDS = 30
VOLUME_STEP = 10

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5
