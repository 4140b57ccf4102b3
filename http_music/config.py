"""
Configuration management for http-music.

Reads configuration from a .env file and environment variables with sensible
defaults. Command-line flags override these values (see app/radio.py).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from http_music.constants import (
    DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
    DEFAULT_ENV_FILE,
    DEFAULT_LOOP_MODE,
    DEFAULT_PLAYLIST_FILE,
    DEFAULT_SORT_MODE,
)
from http_music.music_logic.history import DEFAULT_FILL_SIZE, LOOP_MODES
from http_music.music_logic.sequencer import SORT_MODES

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _load_env_file() -> None:
    """Load environment variables from .env file if it exists."""
    env_path = Path(os.getenv("HTTP_MUSIC_ENV_FILE", DEFAULT_ENV_FILE))

    if env_path.exists():
        load_dotenv(env_path, override=False)  # Don't override existing env vars


def _parse_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


@dataclass
class PlayerConfig:
    """http-music configuration loaded from .env file and environment variables."""

    playlist: str = DEFAULT_PLAYLIST_FILE
    player: Optional[str] = None  # None: detect mpv, then play (SoX)

    # Picker
    sort_mode: str = DEFAULT_SORT_MODE
    loop_mode: str = DEFAULT_LOOP_MODE
    seed: Optional[int] = None
    fill_size: int = DEFAULT_FILL_SIZE

    # Acquisition
    convert: bool = False
    temp_dir: Optional[str] = None
    download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def load_config(cls) -> "PlayerConfig":
        """
        Load configuration from environment variables.

        Returns:
            PlayerConfig instance with loaded values

        Raises:
            ValueError: If configuration is invalid
        """
        # Load .env file first (if it exists)
        _load_env_file()

        playlist = os.getenv("HTTP_MUSIC_PLAYLIST", DEFAULT_PLAYLIST_FILE)
        player = os.getenv("HTTP_MUSIC_PLAYER") or None

        sort_mode = os.getenv("HTTP_MUSIC_SORT", DEFAULT_SORT_MODE)
        loop_mode = os.getenv("HTTP_MUSIC_LOOP", DEFAULT_LOOP_MODE)

        seed_str = os.getenv("HTTP_MUSIC_SEED", "")
        seed = None
        if seed_str:
            try:
                seed = int(seed_str)
            except ValueError:
                raise ValueError(f"Invalid HTTP_MUSIC_SEED: {seed_str} (must be an integer)")

        fill_size_str = os.getenv("HTTP_MUSIC_FILL_SIZE", str(DEFAULT_FILL_SIZE))
        try:
            fill_size = int(fill_size_str)
        except ValueError:
            raise ValueError(f"Invalid HTTP_MUSIC_FILL_SIZE: {fill_size_str} (must be an integer)")

        convert = _parse_bool(os.getenv("HTTP_MUSIC_CONVERT", ""))
        temp_dir = os.getenv("HTTP_MUSIC_TEMP_DIR") or None

        download_timeout_str = os.getenv("HTTP_MUSIC_DOWNLOAD_TIMEOUT", str(DEFAULT_DOWNLOAD_TIMEOUT_SECONDS))
        try:
            download_timeout = float(download_timeout_str)
        except ValueError:
            raise ValueError(
                f"Invalid HTTP_MUSIC_DOWNLOAD_TIMEOUT: {download_timeout_str} (must be a number)"
            )

        log_level = os.getenv("HTTP_MUSIC_LOG_LEVEL", "INFO")
        log_file = os.getenv("HTTP_MUSIC_LOG_FILE") or None

        config = cls(
            playlist=playlist,
            player=player,
            sort_mode=sort_mode,
            loop_mode=loop_mode,
            seed=seed,
            fill_size=fill_size,
            convert=convert,
            temp_dir=temp_dir,
            download_timeout=download_timeout,
            log_level=log_level,
            log_file=log_file,
        )

        config.validate()

        return config

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.sort_mode not in SORT_MODES:
            raise ValueError(
                f"Invalid sort mode: {self.sort_mode} (must be one of: {', '.join(SORT_MODES)})"
            )

        if self.loop_mode not in LOOP_MODES:
            raise ValueError(
                f"Invalid loop mode: {self.loop_mode} (must be one of: {', '.join(LOOP_MODES)})"
            )

        if self.seed is not None and self.seed < 0:
            raise ValueError(f"Invalid seed: {self.seed} (must be >= 0)")

        if self.fill_size <= 0:
            raise ValueError(f"Invalid fill size: {self.fill_size} (must be > 0)")

        if self.download_timeout <= 0:
            raise ValueError(f"Invalid download timeout: {self.download_timeout} (must be > 0)")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.log_level} "
                f"(must be one of: {', '.join(VALID_LOG_LEVELS)})"
            )
