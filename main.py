#!/usr/bin/env python3
"""
Main entry point for http-music.

Example:
    ```bash
    # Interactive mode
    python3 main.py --interactive --open playlist.json

    # Headless, logging to a file (see HTTP_MUSIC_LOG_FILE)
    python3 main.py --sort ordered --loop loop
    ```
"""

import sys

from http_music.app.radio import main

if __name__ == "__main__":
    sys.exit(main())
