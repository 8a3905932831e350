from __future__ import annotations

import random

import pytest

from termlink.engine.errors import NotConnectedError
from termlink.engine.events import Output, SessionStarted, TransportEvent
from termlink.engine.message_router import WILDCARD
from termlink.engine.transports.simulated import (
    SENTINEL_PID,
    SENTINEL_SESSION_ID,
    SimulatedTransport,
    simulated_response,
)


def _transport(**kwargs) -> SimulatedTransport:
    kwargs.setdefault("session_start_delay", 0.0)
    kwargs.setdefault("output_delay", 0.0)
    return SimulatedTransport(**kwargs)


def test_simulated_response_is_deterministic() -> None:
    assert simulated_response("ls") == "Documents\nDownloads\nstorage\n"
    assert simulated_response("  pwd ") == "/data/data/com.termux/files/home\n"
    assert simulated_response("whoami") == "Mock response for: whoami\n"
    assert simulated_response("whoami") == simulated_response("whoami")


@pytest.mark.asyncio
async def test_connect_emits_sentinel_session_started() -> None:
    transport = _transport()
    received: list[TransportEvent] = []
    transport.on_event(WILDCARD, received.append)

    await transport.connect()
    await transport.flush()

    assert transport.connected
    assert len(received) == 1
    assert isinstance(received[0], SessionStarted)
    assert received[0].session_id == SENTINEL_SESSION_ID
    assert received[0].pid == SENTINEL_PID
    await transport.disconnect()


@pytest.mark.asyncio
async def test_connect_is_idempotent() -> None:
    transport = _transport()
    received: list[TransportEvent] = []
    transport.on_event(WILDCARD, received.append)

    await transport.connect()
    await transport.connect()
    await transport.flush()

    assert len(received) == 1
    await transport.disconnect()


@pytest.mark.asyncio
async def test_operations_before_connect_raise_not_connected() -> None:
    transport = _transport()

    with pytest.raises(NotConnectedError):
        await transport.send_input("s1", "ls")
    with pytest.raises(NotConnectedError):
        await transport.start_session("s1", "key", "/tmp")


@pytest.mark.asyncio
async def test_disconnect_before_connect_does_not_raise() -> None:
    transport = _transport()

    await transport.disconnect()

    assert not transport.connected


@pytest.mark.asyncio
async def test_disconnect_makes_transport_inert_until_reconnect() -> None:
    transport = _transport()
    await transport.connect()
    await transport.disconnect()

    with pytest.raises(NotConnectedError):
        await transport.send_input("s1", "ls")

    received: list[TransportEvent] = []
    await transport.connect()
    transport.on_event("s1", received.append)
    await transport.send_input("s1", "ls")
    await transport.flush()

    assert [e.data for e in received] == ["Documents\nDownloads\nstorage\n"]
    await transport.disconnect()


@pytest.mark.asyncio
async def test_start_session_emits_random_pid_for_session() -> None:
    transport = _transport(rng=random.Random(7))
    received: list[TransportEvent] = []
    await transport.connect()
    transport.on_event("s1", received.append)

    await transport.start_session("s1", "key", "/tmp")
    await transport.flush()

    assert len(received) == 1
    assert isinstance(received[0], SessionStarted)
    assert 0 <= received[0].pid < 10000
    assert transport.started_sessions == ["s1"]
    await transport.disconnect()


@pytest.mark.asyncio
async def test_outputs_arrive_in_send_order() -> None:
    transport = _transport(output_delay=0.01)
    received: list[TransportEvent] = []
    await transport.connect()
    transport.on_event("s1", received.append)

    for command in ("pwd", "ls", "node --version", "uptime"):
        await transport.send_input("s1", command)
    await transport.flush()

    assert all(isinstance(e, Output) for e in received)
    assert [e.data for e in received] == [
        simulated_response(c) for c in ("pwd", "ls", "node --version", "uptime")
    ]
    assert all(e.timestamp for e in received)
    await transport.disconnect()


@pytest.mark.asyncio
async def test_disconnect_drops_undelivered_events() -> None:
    transport = _transport(output_delay=60.0)
    received: list[TransportEvent] = []
    await transport.connect()
    transport.on_event("s1", received.append)

    await transport.send_input("s1", "ls")
    await transport.disconnect()

    assert received == []
    assert transport.router.keys() == []
