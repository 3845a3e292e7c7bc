"""
Signal handling for CLI commands that drive long-running jobs.

The first Ctrl-C (or SIGTERM) cancels the running job through its CancelToken
so the stream is closed cleanly; a second one interrupts immediately.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
import contextlib
import signal
import sys
from typing import Any

from .._transports import CancelToken

CANCELLED_EXIT = 130  # POSIX: 128 + SIGINT (2)


def print_cancelled(msg: str = "✖ Cancelled by user") -> None:
    """Print cancellation message to stderr."""
    sys.stderr.write("\n" + msg + "\n")
    sys.stderr.flush()


@contextlib.contextmanager
def cancel_on_signal(cancel: CancelToken) -> Generator[CancelToken, None, None]:
    """Route SIGINT/SIGTERM to ``cancel`` while the block runs."""

    def _handler(_signum: int, _frame: Any) -> None:
        if cancel.cancelled:
            raise KeyboardInterrupt()
        sys.stderr.write("\n✖ Cancelling... (press Ctrl-C again to force)\n")
        sys.stderr.flush()
        cancel.cancel()

    old_int = signal.getsignal(signal.SIGINT)
    old_term = signal.getsignal(signal.SIGTERM)
    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, old_int)
        signal.signal(signal.SIGTERM, old_term)


def graceful_main(fn: Callable[[list[str]], int], argv: list[str]) -> int:
    """
    Run fn(argv), turning a forced interrupt into the conventional exit code.

    Returns:
        Exit code (130 for cancelled, or fn's return value)
    """
    try:
        return int(fn(argv) or 0)
    except KeyboardInterrupt:
        print_cancelled()
        return CANCELLED_EXIT
