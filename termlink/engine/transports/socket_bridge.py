"""Host bridge contract and a JSONL socket implementation.

The live transport never executes commands itself; it delegates to a
host bridge that talks to the out-of-process backend. Any object that
implements HostBridge can be injected (e.g. a platform integration).

SocketBridge speaks newline-delimited JSON (JSONL) over a UNIX socket,
or TCP when the path has the form ``host:port``.

Request:  {"id": N, "method": "start_session", "params": {...}}
Response: {"id": N, "result": true}
Error:    {"id": N, "error": "message"}
Event:    any line without a pending "id", e.g.
          {"type": "OUTPUT", "sessionId": "...", "data": "..."}
"""
from __future__ import annotations

import abc
import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Signature: callback(serialized_event_json) -> None
DataListener = Callable[[str], None]
# Signature: callback(error_text) -> None
ErrorListener = Callable[[str], None]


class HostBridge(abc.ABC):
    """Out-of-process backend connector used by LiveTransport.

    Every operation returns a success/failure outcome instead of
    raising. Events arrive on the data stream as serialized JSON;
    transport-level problems arrive on the separate error stream.
    """

    last_error: str = ""

    @property
    def connected(self) -> bool:
        """Whether the channel is open. Bridges that can lose it override this."""
        return True

    @abc.abstractmethod
    def set_listeners(
        self,
        on_data: DataListener | None,
        on_error: ErrorListener | None,
    ) -> None:
        """Attach (or with None, detach) the event and error streams."""

    @abc.abstractmethod
    async def connect(self, path: str) -> bool:
        """Open the channel to the backend at *path*."""

    @abc.abstractmethod
    async def send(self, message: str) -> bool:
        """Send a raw message to the backend."""

    @abc.abstractmethod
    async def start_session(
        self, session_id: str, credential: str, working_directory: str,
    ) -> bool:
        """Ask the backend to start a session."""

    @abc.abstractmethod
    async def send_input(self, session_id: str, text: str) -> bool:
        """Forward one line of input to a backend session."""

    @abc.abstractmethod
    async def disconnect(self) -> bool:
        """Close the channel and release backend resources."""


def _split_tcp_address(path: str) -> tuple[str, int] | None:
    """Return (host, port) for ``host:port`` paths, None for socket paths."""
    if "/" in path or ":" not in path:
        return None
    host, _, port = path.rpartition(":")
    if not host or not port.isdigit():
        return None
    return host, int(port)


class SocketBridge(HostBridge):
    """JSONL client for a backend listening on a local socket.

    A single reader task demultiplexes the stream: lines whose ``id``
    matches a pending request resolve that request; everything else is
    forwarded to the data listener as an event.
    """

    def __init__(self, request_timeout: float = 30.0) -> None:
        self._request_timeout = request_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task | None = None
        self._pending: dict[int, asyncio.Future[bool]] = {}
        self._req_id: int = 0
        self._write_lock = asyncio.Lock()
        self._closing = False
        self._on_data: DataListener | None = None
        self._on_error: ErrorListener | None = None
        self.last_error = ""

    @property
    def connected(self) -> bool:
        return self._writer is not None

    def set_listeners(
        self,
        on_data: DataListener | None,
        on_error: ErrorListener | None,
    ) -> None:
        self._on_data = on_data
        self._on_error = on_error

    async def connect(self, path: str) -> bool:
        if self._writer is not None:
            return True
        tcp = _split_tcp_address(path)
        try:
            if tcp is not None:
                self._reader, self._writer = await asyncio.open_connection(*tcp)
            else:
                self._reader, self._writer = await asyncio.open_unix_connection(path)
        except (OSError, ValueError) as exc:
            self.last_error = str(exc)
            logger.error("SocketBridge: cannot connect to %s: %s", path, exc)
            return False
        self._closing = False
        self._reader_task = asyncio.get_running_loop().create_task(
            self._read_loop(), name="termlink-socket-bridge-reader",
        )
        logger.info("SocketBridge connected to %s", path)
        return True

    async def send(self, message: str) -> bool:
        return await self._call("send", {"message": message})

    async def start_session(
        self, session_id: str, credential: str, working_directory: str,
    ) -> bool:
        return await self._call("start_session", {
            "session_id": session_id,
            "api_key": credential,
            "working_dir": working_directory,
        })

    async def send_input(self, session_id: str, text: str) -> bool:
        return await self._call("send_input", {
            "session_id": session_id,
            "input": text,
        })

    async def disconnect(self) -> bool:
        self._closing = True
        writer = self._writer
        self._writer = None
        self._reader = None
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except (OSError, ConnectionError) as exc:
                logger.debug("SocketBridge: error while closing: %s", exc)
        task = self._reader_task
        self._reader_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._fail_pending("bridge disconnected")
        return True

    # ── internals ───────────────────────────────────────────────────

    async def _call(self, method: str, params: dict[str, Any]) -> bool:
        if self._writer is None:
            self.last_error = "bridge is not connected"
            logger.warning("SocketBridge: %s while not connected", method)
            return False

        self._req_id += 1
        request_id = self._req_id
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        data = json.dumps(
            {"id": request_id, "method": method, "params": params}
        ).encode("utf-8") + b"\n"
        try:
            async with self._write_lock:
                self._writer.write(data)
                await self._writer.drain()
            return await asyncio.wait_for(future, timeout=self._request_timeout)
        except asyncio.TimeoutError:
            self.last_error = f"{method} timed out after {self._request_timeout:.0f}s"
            logger.warning("SocketBridge: %s", self.last_error)
            return False
        except (OSError, ConnectionError, AttributeError) as exc:
            # AttributeError: writer dropped by a concurrent disconnect()
            self.last_error = str(exc)
            logger.error("SocketBridge: %s failed: %s", method, exc)
            return False
        finally:
            self._pending.pop(request_id, None)

    async def _read_loop(self) -> None:
        reader = self._reader
        try:
            while reader is not None:
                line = await reader.readline()
                if not line:
                    break
                self._handle_line(line)
        except (OSError, ConnectionError) as exc:
            if not self._closing:
                self._report_error(f"Bridge read failed: {exc}")
        finally:
            self._fail_pending("connection closed")
        if not self._closing:
            writer = self._writer
            self._writer = None
            self._reader = None
            if writer is not None:
                writer.close()
            self._report_error("Bridge connection closed")

    def _handle_line(self, raw: bytes) -> None:
        text = raw.decode("utf-8", errors="replace").strip()
        if not text:
            return
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = None

        if isinstance(payload, dict) and "id" in payload and "type" not in payload:
            future = self._pending.get(payload.get("id"))
            if future is None:
                logger.warning(
                    "SocketBridge: discarding response for unknown request id=%s",
                    payload.get("id"),
                )
                return
            if future.done():
                return
            if "error" in payload:
                self.last_error = str(payload["error"])
                logger.warning("SocketBridge: backend error: %s", self.last_error)
                future.set_result(False)
            else:
                future.set_result(bool(payload.get("result", True)))
            return

        if self._on_data is not None:
            try:
                self._on_data(text)
            except Exception:
                logger.exception("SocketBridge: data listener failed")

    def _report_error(self, message: str) -> None:
        self.last_error = message
        logger.error("SocketBridge: %s", message)
        if self._on_error is not None:
            self._on_error(message)

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_result(False)
        if self._pending:
            self.last_error = reason
