"""Message router for transport events.

Routes each inbound TransportEvent to the handler registered for its
session id and, independently, to the wildcard handler. Both fire for
the same event when both are registered (fan-out, not either/or).

The router does NOT store event history; the orchestrator turns events
into session messages.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .events import TransportEvent

logger = logging.getLogger(__name__)

WILDCARD = "*"

EventHandler = Callable[[TransportEvent], None]


@dataclass
class RouterMetrics:
    """Lightweight counters for observability."""

    events_dispatched: int = 0
    handler_invocations: int = 0
    handler_failures: int = 0
    unrouted_events: int = 0

    def snapshot(self) -> dict[str, int]:
        """Return a dict copy of all counters."""
        return {
            "events_dispatched": self.events_dispatched,
            "handler_invocations": self.handler_invocations,
            "handler_failures": self.handler_failures,
            "unrouted_events": self.unrouted_events,
        }


class MessageRouter:
    """Maps handler keys (session ids or WILDCARD) to one handler each.

    Registering a key again replaces the previous handler. Handlers are
    synchronous; a handler that raises is logged and does not stop
    delivery to the other handler.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, EventHandler] = {}
        self.metrics = RouterMetrics()

    def register(self, key: str, handler: EventHandler) -> None:
        """Install *handler* for a session id, or for WILDCARD."""
        if key in self._handlers:
            logger.debug("Replacing handler for %s", key)
        self._handlers[key] = handler

    def unregister(self, key: str) -> bool:
        """Remove the handler for *key*. Returns whether one existed."""
        return self._handlers.pop(key, None) is not None

    def has_handler(self, key: str) -> bool:
        return key in self._handlers

    def keys(self) -> list[str]:
        return list(self._handlers)

    def clear(self) -> None:
        self._handlers.clear()

    def dispatch(self, event: TransportEvent) -> int:
        """Deliver *event*. Returns the number of handlers invoked.

        Handlers are looked up before any of them runs, so a handler may
        register or unregister handlers without affecting this delivery.
        """
        self.metrics.events_dispatched += 1
        targets: list[tuple[str, EventHandler]] = []
        if event.session_id:
            scoped = self._handlers.get(event.session_id)
            if scoped is not None:
                targets.append((event.session_id, scoped))
        wildcard = self._handlers.get(WILDCARD)
        if wildcard is not None:
            targets.append((WILDCARD, wildcard))

        if not targets:
            self.metrics.unrouted_events += 1
            logger.debug(
                "No handler for %s (session=%s)", event.kind, event.session_id,
            )
            return 0

        for key, handler in targets:
            self.metrics.handler_invocations += 1
            try:
                handler(event)
            except Exception:
                self.metrics.handler_failures += 1
                logger.exception(
                    "Handler for %s failed on %s event", key, event.kind,
                )
        return len(targets)
