"""Feature modules behind the notes manager.

Stateless helpers are standalone functions; stateful features are helper
classes that own their own state and communicate with the host through
injected callbacks.

Modules
-------
markers
    :func:`render_markers` / :class:`MarkerRenderer`: which notes fit a
    live document and what their markers show.
click_detector
    :class:`ClickDetector`: debounced marker-click state machine.
timers
    :class:`SingleShotTimer`: one outstanding timer per purpose.
events
    :class:`EventHub` / :class:`Subscription`: host event subscriptions.
"""

from .click_detector import (
    ClickDetector,
    ClickState,
    SelectionEvent,
    SelectionOrigin,
    in_marker_area,
)
from .events import EventHub, Subscription
from .markers import (
    DocumentSnapshot,
    HoverPayload,
    Marker,
    MarkerRenderer,
    build_hover,
    render_markers,
)
from .timers import SingleShotTimer

__all__ = [
    "ClickDetector",
    "ClickState",
    "DocumentSnapshot",
    "EventHub",
    "HoverPayload",
    "Marker",
    "MarkerRenderer",
    "SelectionEvent",
    "SelectionOrigin",
    "SingleShotTimer",
    "Subscription",
    "build_hover",
    "in_marker_area",
    "render_markers",
]
