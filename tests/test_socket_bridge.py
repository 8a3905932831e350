from __future__ import annotations

import asyncio
import json
import os
import tempfile

import pytest

from termlink.engine.transports.socket_bridge import SocketBridge, _split_tcp_address


class _Backend:
    """JSONL backend: acks every request, emits OUTPUT for send_input."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.writers: list[asyncio.StreamWriter] = []

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.writers.append(writer)
        while True:
            line = await reader.readline()
            if not line:
                break
            request = json.loads(line)
            self.requests.append(request)
            params = request.get("params", {})
            if request["method"] == "send_input" and params.get("input") == "fail":
                reply = {"id": request["id"], "error": "session not found"}
            else:
                if request["method"] == "send_input":
                    event = {
                        "type": "OUTPUT",
                        "sessionId": params["session_id"],
                        "data": f"echo: {params['input']}\n",
                    }
                    writer.write(json.dumps(event).encode() + b"\n")
                reply = {"id": request["id"], "result": True}
            writer.write(json.dumps(reply).encode() + b"\n")
            await writer.drain()
        writer.close()

    async def drop_all(self) -> None:
        for writer in self.writers:
            writer.close()


def test_split_tcp_address() -> None:
    assert _split_tcp_address("127.0.0.1:9000") == ("127.0.0.1", 9000)
    assert _split_tcp_address("/tmp/claude-code.sock") is None
    assert _split_tcp_address("localhost:notaport") is None
    assert _split_tcp_address("plainname") is None


@pytest.mark.asyncio
async def test_unix_socket_round_trip() -> None:
    backend = _Backend()
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "b.sock")
        server = await asyncio.start_unix_server(backend.handle, path=path)
        bridge = SocketBridge(request_timeout=5.0)
        data: list[str] = []
        bridge.set_listeners(data.append, None)
        try:
            assert await bridge.connect(path)
            assert await bridge.start_session("s1", "key", "/work")
            assert await bridge.send_input("s1", "ls")
        finally:
            await bridge.disconnect()
            server.close()
            await server.wait_closed()

    assert backend.requests[0] == {
        "id": 1,
        "method": "start_session",
        "params": {"session_id": "s1", "api_key": "key", "working_dir": "/work"},
    }
    assert backend.requests[1]["params"] == {"session_id": "s1", "input": "ls"}
    assert [json.loads(d) for d in data] == [
        {"type": "OUTPUT", "sessionId": "s1", "data": "echo: ls\n"},
    ]


@pytest.mark.asyncio
async def test_tcp_error_response_returns_false_with_last_error() -> None:
    backend = _Backend()
    server = await asyncio.start_server(backend.handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    bridge = SocketBridge(request_timeout=5.0)
    try:
        assert await bridge.connect(f"127.0.0.1:{port}")
        assert await bridge.send_input("s1", "fail") is False
        assert bridge.last_error == "session not found"
        assert await bridge.send("raw message") is True
    finally:
        await bridge.disconnect()
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_connect_to_missing_socket_returns_false() -> None:
    bridge = SocketBridge()
    with tempfile.TemporaryDirectory() as tmpdir:
        ok = await bridge.connect(os.path.join(tmpdir, "absent.sock"))

    assert ok is False
    assert bridge.last_error
    assert not bridge.connected


@pytest.mark.asyncio
async def test_calls_before_connect_fail_without_raising() -> None:
    bridge = SocketBridge()

    assert await bridge.send_input("s1", "ls") is False
    assert bridge.last_error == "bridge is not connected"
    assert await bridge.disconnect() is True


@pytest.mark.asyncio
async def test_backend_hangup_reports_on_error_stream() -> None:
    backend = _Backend()
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "b.sock")
        server = await asyncio.start_unix_server(backend.handle, path=path)
        bridge = SocketBridge(request_timeout=5.0)
        errors: list[str] = []
        closed = asyncio.Event()

        def on_error(text: str) -> None:
            errors.append(text)
            closed.set()

        bridge.set_listeners(None, on_error)
        try:
            assert await bridge.connect(path)
            assert await bridge.send_input("s1", "ls")
            await backend.drop_all()
            await asyncio.wait_for(closed.wait(), timeout=5.0)
        finally:
            await bridge.disconnect()
            server.close()
            await server.wait_closed()

    assert errors == ["Bridge connection closed"]
    assert not bridge.connected


@pytest.mark.asyncio
async def test_request_timeout_returns_false() -> None:
    async def silent(reader, writer) -> None:
        await reader.read()
        writer.close()

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "b.sock")
        server = await asyncio.start_unix_server(silent, path=path)
        bridge = SocketBridge(request_timeout=0.05)
        try:
            assert await bridge.connect(path)
            assert await bridge.start_session("s1", "k", "/w") is False
            assert "timed out" in bridge.last_error
        finally:
            await bridge.disconnect()
            server.close()
            await server.wait_closed()
