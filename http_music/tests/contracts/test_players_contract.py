"""
Contract tests for player backends.

Tests map to contract clauses:
- PL1: Backend selection (3 tests)
- PL2: Command lines (2 tests)
- PL3: Process lifecycle (5 tests)
"""

import asyncio
import logging

import pytest

from http_music.broadcast_core.processes import ProcessFailed, run_process
from http_music.outputs import MPVPlayer, NullPlayer, SoxPlayer, create_player, determine_default_player
from http_music.tests.contracts.test_doubles import CommandPlayer


def fake_which(available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


class TestPL1_Selection:
    """Tests for PL1 — choosing a backend."""

    @pytest.mark.parametrize("available,expected", [
        ({"mpv", "play"}, "mpv"),
        ({"play"}, "sox"),
        (set(), "none"),
    ])
    def test_pl1_default_player_detection(self, monkeypatch, available, expected):
        """PL1: mpv is preferred, then SoX's play, else nothing."""
        monkeypatch.setattr("http_music.outputs.factory.shutil.which", fake_which(available))
        assert determine_default_player() == expected

    def test_pl1_named_backends(self):
        """PL1: Names map to backends; "play" is SoX."""
        assert isinstance(create_player("mpv"), MPVPlayer)
        assert isinstance(create_player("sox"), SoxPlayer)
        assert isinstance(create_player("play"), SoxPlayer)
        assert isinstance(create_player("none"), NullPlayer)

    def test_pl1_unknown_name_plays_nothing(self, caplog):
        """PL1: An unknown player name warns and falls back to the null player."""
        with caplog.at_level(logging.WARNING):
            player = create_player("vlc")
        assert isinstance(player, NullPlayer)
        assert "Unknown player: vlc" in caplog.text


class TestPL2_CommandLines:
    """Tests for PL2 — player arguments."""

    def test_pl2_mpv_command(self):
        """PL2: mpv runs headless with an IPC socket; play options precede the file."""
        player = MPVPlayer(["--volume=50"])
        cmd = player.build_command("/a.wav")
        assert cmd[0] == "mpv"
        assert "--no-video" in cmd
        assert f"--input-ipc-server={player.socket_path}" in cmd
        assert cmd[-2:] == ["--volume=50", "/a.wav"]
        assert player.has_control_channel

    def test_pl2_sox_command(self):
        """PL2: SoX's play runs quietly and has no control channel."""
        player = SoxPlayer(["-q"])
        assert player.build_command("/a.wav") == ["play", "--no-show-progress", "-q", "/a.wav"]
        assert not player.has_control_channel


class TestPL3_Lifecycle:
    """Tests for PL3 — real child processes."""

    def test_pl3_stop_terminates_player(self):
        """PL3: stop() ends the player's process group."""
        async def scenario():
            player = CommandPlayer(["sleep", "30"])
            task = asyncio.create_task(player.play("/a.wav"))
            while not player.is_playing:
                await asyncio.sleep(0.01)
            await player.stop()
            returncode = await asyncio.wait_for(task, timeout=5)
            assert returncode != 0
            assert not player.is_playing

        asyncio.run(scenario())

    def test_pl3_null_player_waits_until_stopped(self):
        """PL3: The null player "plays" until it is stopped."""
        async def scenario():
            player = NullPlayer()
            task = asyncio.create_task(player.play("/a.wav"))
            await asyncio.sleep(0.05)
            assert player.is_playing
            await player.stop()
            assert await task == 0

        asyncio.run(scenario())

    def test_pl3_helper_process_results(self):
        """PL3: run_process reports non-zero exits and missing executables."""
        async def scenario():
            assert await run_process(["true"]) == ""
            with pytest.raises(ProcessFailed) as excinfo:
                await run_process(["sh", "-c", "echo broken >&2; exit 3"])
            assert excinfo.value.returncode == 3
            assert "broken" in str(excinfo.value)
            with pytest.raises(FileNotFoundError):
                await run_process(["definitely-not-installed-anywhere"])

        asyncio.run(scenario())

    def test_pl3_stop_during_startup_terminates_new_process(self):
        """PL3: A stop that arrives while the player is being spawned still stops it."""
        async def scenario():
            player = CommandPlayer(["sleep", "30"])
            task = asyncio.create_task(player.play("/a.wav"))
            await asyncio.sleep(0)
            await player.stop()
            returncode = await asyncio.wait_for(task, timeout=5)
            assert returncode != 0
            assert not player.is_playing

        asyncio.run(scenario())

    def test_pl3_stop_while_idle_does_not_affect_next_play(self):
        """PL3: A stop with nothing playing is forgotten by the next play."""
        async def scenario():
            player = CommandPlayer(["true"])
            await player.stop()
            assert await asyncio.wait_for(player.play("/a.wav"), timeout=5) == 0

        asyncio.run(scenario())
