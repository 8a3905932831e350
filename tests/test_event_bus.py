from __future__ import annotations

import asyncio

import pytest

from termlink.engine.event_bus import EventBus
from termlink.engine.events import Output


async def _collect(bus: EventBus, into: list) -> None:
    async for event in bus.consume():
        into.append(event.data)


@pytest.mark.asyncio
async def test_delayed_events_keep_emission_order() -> None:
    bus = EventBus()
    received: list[str] = []
    consumer = asyncio.create_task(_collect(bus, received))

    bus.emit(Output(data="slow"), delay=0.02)
    bus.emit(Output(data="fast"))
    await bus.join()

    assert received == ["slow", "fast"]
    consumer.cancel()


def test_full_queue_drops_event() -> None:
    bus = EventBus(maxsize=1)

    assert bus.emit(Output(data="a")) is True
    assert bus.emit(Output(data="b")) is False
    assert bus.pending() == 1


@pytest.mark.asyncio
async def test_close_drops_pending_and_rejects_new_events() -> None:
    bus = EventBus()
    bus.emit(Output(data="a"))

    bus.close()

    assert bus.closed
    assert bus.pending() == 0
    assert bus.emit(Output(data="b")) is False
    # join() must not hang on drained events.
    await asyncio.wait_for(bus.join(), timeout=1)

    bus.reset()
    assert bus.emit(Output(data="c")) is True
