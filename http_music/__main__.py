import sys

from http_music.app.radio import main

if __name__ == "__main__":
    sys.exit(main())
