"""
Contract tests for signals.

Tests map to contract clauses:
- SG1: Persistent and one-shot listeners (3 tests)
- SG2: Unsubscription (2 tests)
- SG3: Listener failures (1 test)
"""

import logging

from http_music.broadcast_core.signals import Signal


class TestSG1_Listeners:
    """Tests for SG1 — listener lifetimes."""

    def test_sg1_persistent_listener_called_every_emit(self):
        """SG1: A persistent listener sees every emit, with its arguments."""
        signal = Signal("test")
        calls = []
        signal.connect(lambda value: calls.append(value))
        signal.emit(1)
        signal.emit(2)
        assert calls == [1, 2]

    def test_sg1_once_listener_called_at_most_once(self):
        """SG1: A one-shot listener is removed before it runs."""
        signal = Signal("test")
        calls = []
        signal.connect(lambda value: calls.append(value), once=True)
        signal.emit("a")
        signal.emit("b")
        assert calls == ["a"]
        assert signal.listener_count == 0

    def test_sg1_listeners_called_in_connection_order(self):
        """SG1: Listeners run synchronously in the order they connected."""
        signal = Signal("test")
        calls = []
        signal.connect(lambda: calls.append("first"))
        signal.connect(lambda: calls.append("second"), once=True)
        signal.connect(lambda: calls.append("third"))
        signal.emit()
        assert calls == ["first", "second", "third"]


class TestSG2_Unsubscribe:
    """Tests for SG2 — the function returned by connect()."""

    def test_sg2_unsubscribe_removes_listener(self):
        """SG2: An unsubscribed listener is never called again; repeat calls are harmless."""
        signal = Signal("test")
        calls = []
        unsubscribe = signal.connect(lambda: calls.append(1))
        unsubscribe()
        unsubscribe()
        signal.emit()
        assert calls == []
        assert signal.listener_count == 0

    def test_sg2_listener_unsubscribed_during_emit_is_skipped(self):
        """SG2: A listener removed by an earlier listener in the same emit doesn't run."""
        signal = Signal("test")
        calls = []
        unsubscribe_second = None

        def first():
            calls.append("first")
            unsubscribe_second()

        signal.connect(first)
        unsubscribe_second = signal.connect(lambda: calls.append("second"))
        signal.emit()
        assert calls == ["first"]


class TestSG3_ListenerFailures:
    """Tests for SG3 — a failing listener doesn't break the emitter."""

    def test_sg3_failure_logged_and_other_listeners_run(self, caplog):
        """SG3: Exceptions from listeners are logged, later listeners still run."""
        signal = Signal("acquired")
        calls = []

        def broken():
            raise ValueError("nope")

        signal.connect(broken)
        signal.connect(lambda: calls.append("ok"))
        with caplog.at_level(logging.ERROR):
            signal.emit()
        assert calls == ["ok"]
        assert "[SIGNAL] Listener for 'acquired' failed" in caplog.text
