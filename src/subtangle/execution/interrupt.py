"""
Cooperative interruption of an unbounded build.

In retain mode the builder keeps generating records until the operator
presses enter. A daemon thread blocks on stdin and fires a one-shot
signal; the builder polls it between records, so the record currently
being attached always completes.
"""

from __future__ import annotations

import sys
import threading
from typing import TextIO


class InterruptSignal:
    """One-shot, thread-safe stop request."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    def fire(self) -> bool:
        """
        Request a stop.

        Returns:
            True for the call that actually set the signal, False if it
            was already set.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def is_set(self) -> bool:
        """Non-blocking check used between build iterations."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


def listen_for_keypress(
    signal: InterruptSignal,
    stream: TextIO | None = None,
) -> threading.Thread:
    """
    Start a daemon thread that fires ``signal`` once a line is read.

    End of input also fires the signal, so a closed stdin never leaves an
    unbounded build running with no way to stop it.

    Args:
        signal: The signal to fire.
        stream: Input to wait on. Defaults to ``sys.stdin``.

    Returns:
        The started listener thread.
    """
    source = stream if stream is not None else sys.stdin

    def _wait_for_line() -> None:
        try:
            source.readline()
        finally:
            signal.fire()

    thread = threading.Thread(
        target=_wait_for_line,
        name="subtangle-keypress",
        daemon=True,
    )
    thread.start()
    return thread
