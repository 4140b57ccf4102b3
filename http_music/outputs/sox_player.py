from typing import List, Optional

from http_music.outputs.base_player import BasePlayer


class SoxPlayer(BasePlayer):
    """
    Minimal backend: SoX's ``play`` command.

    ``play`` has no control channel, so pause/seek/volume are ignored.
    """

    name = "sox"

    def __init__(self, play_opts: Optional[List[str]] = None, executable: str = "play"):
        super().__init__(play_opts)
        self.executable = executable

    def build_command(self, path: str) -> List[str]:
        return [self.executable, "--no-show-progress", *self.play_opts, path]
