"""
Contract tests for keybindings and the key reader.

Tests map to contract clauses:
- KB1: Compiling bindings (4 tests)
- KB2: Help text rendering (2 tests)
- KB3: Dispatching keypresses (2 tests)
"""

import asyncio
import logging

from http_music.app.keybindings import (
    DEFAULT_KEYBINDINGS,
    compile_keybindings,
    get_combo_for_command,
    lookup_command,
    stringify_combo,
)
from http_music.app.terminal import KeyReader
from http_music.constants import LARGE_SEEK_SECONDS, SMALL_SEEK_SECONDS
from http_music.tests.contracts.test_doubles import settle


class TestKB1_Compile:
    """Tests for KB1 — bindings become an input-bytes lookup."""

    def test_kb1_default_bindings(self):
        """KB1: Defaults cover pause, seeks, volume, skips, info and quit."""
        compiled = compile_keybindings(DEFAULT_KEYBINDINGS)
        assert lookup_command(compiled, b" ") == ("toggle_pause", ())
        assert lookup_command(compiled, b"\x1b[C") == ("seek", (SMALL_SEEK_SECONDS,))
        assert lookup_command(compiled, b"\x1b[1;2D") == ("seek", (-LARGE_SEEK_SECONDS,))
        assert lookup_command(compiled, b"S") == ("skip_current", ())
        assert lookup_command(compiled, b"\x7f") == ("skip_upcoming", ())
        assert lookup_command(compiled, b"\x03") == ("quit", ())
        assert lookup_command(compiled, b"z") is None

    def test_kb1_unknown_command_dropped(self, caplog):
        """KB1: A binding naming an unknown command is warned about and skipped."""
        with caplog.at_level(logging.WARNING):
            compiled = compile_keybindings([[["x"], "explode"], [["y"], "quit"]])
        assert compiled == {b"y": ("quit", ())}
        assert "Invalid command explode" in caplog.text

    def test_kb1_invalid_key_part_dropped(self, caplog):
        """KB1: Unknown key names and out-of-range bytes are rejected."""
        with caplog.at_level(logging.WARNING):
            compiled = compile_keybindings([[["hyperKey"], "quit"], [[0x1FF], "quit"]])
        assert compiled == {}
        assert "Invalid keybinding part" in caplog.text

    def test_kb1_first_binding_wins(self):
        """KB1: A later binding for the same combo doesn't replace the first."""
        compiled = compile_keybindings([[["q"], "quit"], [["q"], "skip_current"]])
        assert compiled[b"q"] == ("quit", ())


class TestKB2_HelpText:
    """Tests for KB2 — combos rendered for the controls listing."""

    def test_kb2_stringify_combo(self):
        """KB2: Named keys use display names; single characters are upper-cased."""
        assert stringify_combo(["shiftLeft"]) == "Shift+Left"
        assert stringify_combo(["s"]) == "S"
        assert stringify_combo(["esc", "q"]) == "Escape+Q"

    def test_kb2_combo_lookup_by_command(self):
        """KB2: The first combo bound to a command is found."""
        assert get_combo_for_command("toggle_pause", DEFAULT_KEYBINDINGS) == ["space"]
        assert get_combo_for_command("nothing", DEFAULT_KEYBINDINGS) is None


class TestKB3_Dispatch:
    """Tests for KB3 — KeyReader hands bound keypresses to the command handler."""

    def test_kb3_feed_dispatches_command(self):
        """KB3: A bound keypress runs the handler with the binding's arguments."""
        async def scenario():
            calls = []

            async def handler(command, *args):
                calls.append((command, args))

            reader = KeyReader(compile_keybindings(DEFAULT_KEYBINDINGS), handler)
            reader.feed(b"\x1b[D")
            reader.feed(b"zzz")
            await settle()
            assert calls == [("seek", (-SMALL_SEEK_SECONDS,))]

        asyncio.run(scenario())

    def test_kb3_failing_command_logged(self, caplog):
        """KB3: A handler error is logged, not raised into the event loop."""
        async def scenario():
            async def handler(command, *args):
                raise RuntimeError("handler broke")

            reader = KeyReader(compile_keybindings(DEFAULT_KEYBINDINGS), handler)
            reader.feed(b"q")
            await settle()

        with caplog.at_level(logging.ERROR):
            asyncio.run(scenario())
        assert "Command failed: handler broke" in caplog.text
