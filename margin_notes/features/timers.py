"""Single-purpose cancellable timer.

Wraps a host ``set_timer(delay, callback)`` function (e.g. Textual's
``App.set_timer``) so that each logical purpose (click debounce, startup
settle, render retry) has at most one outstanding timer.
"""

from __future__ import annotations

from typing import Any, Callable

from ..log import logger

# Type alias for the timer handle returned by ``App.set_timer``.
TimerHandle = Any
SetTimer = Callable[[float, Callable[[], object]], TimerHandle]


class SingleShotTimer:
    """At most one pending callback; scheduling again replaces it.

    Parameters
    ----------
    set_timer:
        Callback that starts a one-shot timer.  Must return a handle with a
        ``.stop()`` method.
    name:
        Purpose label, used only in log messages.
    """

    def __init__(self, set_timer: SetTimer, name: str = "timer") -> None:
        self._set_timer = set_timer
        self.name = name
        self._handle: TimerHandle | None = None
        self._generation = 0

    def schedule(self, delay: float, callback: Callable[[], object]) -> None:
        """Cancel any pending callback and run *callback* after *delay* seconds."""
        self.cancel()
        self._generation += 1
        generation = self._generation

        def fire() -> None:
            # A stopped handle may still fire on some hosts; ignore stale ones
            if generation != self._generation:
                return
            self._handle = None
            try:
                callback()
            except Exception:
                logger.debug("%s callback failed", self.name, exc_info=True)

        self._handle = self._set_timer(delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.stop()
            self._handle = None
            self._generation += 1
