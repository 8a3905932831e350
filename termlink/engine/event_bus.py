"""Async event bus between a transport's event source and its router.

Transports emit events from callbacks (bridge listeners, timers). The
EventBus queues them so a single consumer loop can hand them to the
MessageRouter strictly in emission order.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from termlink.engine.events import TransportEvent

logger = logging.getLogger(__name__)


class EventBus:
    """FIFO queue of (delay, event) pairs with join() support.

    A per-event delay is honoured by the consumer before the event is
    yielded; later events wait behind it, so ordering is never traded
    for latency.
    """

    def __init__(self, maxsize: int = 5000) -> None:
        self._queue: asyncio.Queue[tuple[float, TransportEvent]] = asyncio.Queue(
            maxsize=maxsize
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: TransportEvent, delay: float = 0.0) -> bool:
        """Queue an event. Returns False if the bus is closed or full."""
        if self._closed:
            logger.debug("EventBus closed, dropping %s", event.kind)
            return False
        try:
            self._queue.put_nowait((max(delay, 0.0), event))
        except asyncio.QueueFull:
            logger.error(
                "EventBus queue full, dropping: %s (queue size: %d)",
                event.kind,
                self._queue.qsize(),
            )
            return False
        return True

    async def consume(self) -> AsyncIterator[TransportEvent]:
        """Yield events as they become due. Stops on close()."""
        while not self._closed:
            delay, event = await self._queue.get()
            try:
                if delay:
                    await asyncio.sleep(delay)
                if self._closed:
                    continue
                yield event
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued event has been consumed."""
        await self._queue.join()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Stop the consumer loop and drop anything still queued."""
        self._closed = True
        self._drain()

    def reset(self) -> None:
        """Drain leftover events and re-open the bus."""
        self._drain()
        self._closed = False

    def _drain(self) -> None:
        while not self._queue.empty():
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
