"""Live transport - delegates to a host bridge for real process execution."""
from __future__ import annotations

import logging

from ..errors import BackendReportedError, TransportConnectionError
from ..events import Error, event_from_json
from ..message_router import MessageRouter
from .base import Transport
from .socket_bridge import HostBridge

logger = logging.getLogger(__name__)


class LiveTransport(Transport):
    """Transport backed by an out-of-process backend.

    The bridge's data stream carries serialized TransportEvents; its
    error stream carries free-form error text, which is surfaced as an
    Error event without a session id.
    """

    def __init__(
        self,
        bridge: HostBridge,
        socket_path: str,
        router: MessageRouter | None = None,
        *,
        event_queue_size: int = 5000,
    ) -> None:
        super().__init__(router=router, event_queue_size=event_queue_size)
        self.bridge = bridge
        self.socket_path = socket_path
        self.dropped_lines: int = 0

    @property
    def name(self) -> str:
        return "live"

    async def _open(self) -> None:
        ok = await self.bridge.connect(self.socket_path)
        if not ok:
            raise TransportConnectionError(
                self.socket_path,
                self.bridge.last_error or "bridge refused connection",
            )
        self.bridge.set_listeners(self._on_bridge_data, self._on_bridge_error)

    async def _close(self) -> None:
        self.bridge.set_listeners(None, None)
        ok = await self.bridge.disconnect()
        if not ok:
            raise TransportConnectionError(
                self.socket_path,
                self.bridge.last_error or "bridge disconnect failed",
            )

    async def _start_session(
        self, session_id: str, credential: str, working_directory: str,
    ) -> None:
        ok = await self.bridge.start_session(session_id, credential, working_directory)
        if not ok:
            raise BackendReportedError("start_session", self.bridge.last_error)

    async def _send_input(self, session_id: str, text: str) -> None:
        ok = await self.bridge.send_input(session_id, text)
        if not ok:
            raise BackendReportedError("send_input", self.bridge.last_error)

    def _on_bridge_data(self, data: str) -> None:
        try:
            event = event_from_json(data)
        except ValueError as exc:
            self.dropped_lines += 1
            logger.error("Failed to parse backend data %r: %s", data[:200], exc)
            return
        self._emit(event)

    def _on_bridge_error(self, error: str) -> None:
        logger.error("Backend socket error: %s", error)
        self._emit(Error(error=error))
        if not self.bridge.connected:
            self._connection_lost(error)
