"""Tests for the one-shot interrupt signal and stdin listener."""

from __future__ import annotations

import io

from subtangle.execution.interrupt import InterruptSignal, listen_for_keypress


class TestInterruptSignal:
    def test_starts_clear(self) -> None:
        assert InterruptSignal().is_set() is False

    def test_fires_once(self) -> None:
        signal = InterruptSignal()
        assert signal.fire() is True
        assert signal.fire() is False
        assert signal.is_set() is True

    def test_wait_times_out_when_clear(self) -> None:
        assert InterruptSignal().wait(timeout=0.01) is False


class TestKeypressListener:
    def test_enter_fires_signal(self) -> None:
        signal = InterruptSignal()
        thread = listen_for_keypress(signal, io.StringIO("\n"))
        thread.join(timeout=2)
        assert signal.is_set()
        assert thread.daemon

    def test_end_of_input_fires_signal(self) -> None:
        signal = InterruptSignal()
        thread = listen_for_keypress(signal, io.StringIO(""))
        thread.join(timeout=2)
        assert signal.is_set()
