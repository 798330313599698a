"""
Event bus - fire-and-forget sink for dispatcher events.

Events emitted by the core:
- ``incomingMessage``: the Request, at the start of every request
- ``forwarding``: a "Forwarding to <collection>.<handler> ..." message
- ``error``: a message or traceback text
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger("conduit.events")

Listener = Callable[[Any], None]


class EventBus:
    """
    Named-event dispatcher that also mirrors events to logging.

    ``error`` events are logged at ERROR, everything else at DEBUG.
    Listeners run synchronously; a failing listener is logged and never
    breaks the request that emitted the event.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event_name: str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``event_name``."""
        self._listeners.setdefault(event_name, []).append(listener)

    def off(self, event_name: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_name, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event_name: str, payload: Any = None) -> None:
        """Emit an event to every listener."""
        if event_name == "error":
            logger.error("%s", payload)
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s: %s", event_name, payload)

        for listener in list(self._listeners.get(event_name, ())):
            try:
                listener(payload)
            except Exception as e:
                logger.error("Listener for '%s' failed: %s", event_name, e)
