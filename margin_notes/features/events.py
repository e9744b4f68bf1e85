"""Host event subscriptions.

The host application emits named events (document opened, active document
changed, caret moved); components subscribe and get back a
:class:`Subscription` they can release independently.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

from ..log import logger

Handler = Callable[..., object]


class Subscription:
    """Handle for one registered handler.  ``dispose()`` is idempotent."""

    def __init__(self, release: Callable[[], None]) -> None:
        self._release: Callable[[], None] | None = release

    def dispose(self) -> None:
        if self._release is not None:
            release, self._release = self._release, None
            release()


class EventHub:
    """Minimal synchronous publish/subscribe registry."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        self._handlers[event].append(handler)

        def release() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return Subscription(release)

    def emit(self, event: str, *args: Any) -> None:
        """Call every handler for *event*; a failing handler does not stop the rest."""
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(*args)
            except Exception:
                logger.debug("handler for %s failed", event, exc_info=True)
