"""Time source used by the engine, replaceable in tests."""

import threading
from datetime import datetime

from tasknotify.utils.timestamps import utc_now


class Clock:
    """Wall-clock time source.

    The deferred dispatcher and the worker read time only through this
    object, and the dispatcher sleeps only through ``wait``, so tests can
    pin or advance it.
    """

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        raise NotImplementedError

    def wait(self, condition: threading.Condition, seconds: float) -> None:
        """Block on ``condition`` for up to ``seconds`` of this clock's time.

        The caller must hold ``condition``. Returns early when the condition
        is notified; callers re-check their state either way.
        """
        raise NotImplementedError


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return utc_now()

    def wait(self, condition: threading.Condition, seconds: float) -> None:
        condition.wait(timeout=seconds)
