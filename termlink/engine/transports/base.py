"""Abstract base for transports.

A transport connects to a command-execution backend, starts sessions,
forwards input, and delivers asynchronous TransportEvents. Output is
never returned by send_input(); it always arrives as events through
the MessageRouter.

Each implementation supplies the backend-specific _open/_close/
_start_session/_send_input steps. The base class owns the connected
flag, the EventBus and the pump task that dispatches queued events to
the router in emission order.
"""
from __future__ import annotations

import abc
import asyncio
import logging

from ..errors import NotConnectedError, TransportConnectionError
from ..event_bus import EventBus
from ..events import TransportEvent
from ..message_router import EventHandler, MessageRouter

logger = logging.getLogger(__name__)


class Transport(abc.ABC):
    """Abstract transport interface.

    Implementations:
    - SimulatedTransport: deterministic canned responses, no backend
    - LiveTransport: delegates to a host bridge (out-of-process backend)
    """

    def __init__(
        self,
        router: MessageRouter | None = None,
        event_queue_size: int = 5000,
    ) -> None:
        self.router = router if router is not None else MessageRouter()
        self._bus = EventBus(maxsize=event_queue_size)
        self._pump_task: asyncio.Task | None = None
        self._retire_task: asyncio.Task | None = None
        self._connected = False

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short transport name (e.g. 'simulated', 'live')."""

    @property
    def connected(self) -> bool:
        return self._connected

    # ── contract ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Establish readiness. No-op when already connected.

        Raises TransportConnectionError on failure.
        """
        if self._connected:
            logger.debug("%s transport already connected", self.name)
            return
        try:
            await self._open()
        except TransportConnectionError:
            raise
        except Exception as exc:
            raise TransportConnectionError(self.name, str(exc)) from exc
        # A pump left over from a lost connection must not run twice.
        retire, self._retire_task = self._retire_task, None
        if retire is not None:
            await retire
        await self._stop_pump()
        self._bus.reset()
        self._start_pump()
        self._connected = True
        logger.info("%s transport connected", self.name)
        self._after_connect()

    async def start_session(
        self,
        session_id: str,
        credential: str,
        working_directory: str,
    ) -> None:
        """Ask the backend for a new execution context bound to *session_id*.

        A SessionStarted event follows asynchronously; the pid is never
        returned from this call.
        """
        self._require_connected("start_session")
        logger.info(
            "%s transport: starting session %s (cwd=%s)",
            self.name, session_id, working_directory,
        )
        await self._start_session(session_id, credential, working_directory)

    async def send_input(self, session_id: str, text: str) -> None:
        """Forward one line of input. Output arrives later as events."""
        self._require_connected("send_input")
        logger.debug("%s transport: input for %s: %r", self.name, session_id, text)
        await self._send_input(session_id, text)

    async def disconnect(self) -> None:
        """Release backend resources and make the transport inert.

        Safe to call on a transport that never connected.
        """
        was_connected = self._connected
        self._connected = False
        self.router.clear()
        self._bus.close()
        await self._stop_pump()
        retire, self._retire_task = self._retire_task, None
        if retire is not None:
            await retire
        if not was_connected:
            logger.debug("%s transport disconnect: was not connected", self.name)
            return
        try:
            await self._close()
        except TransportConnectionError:
            raise
        except Exception as exc:
            raise TransportConnectionError(self.name, str(exc)) from exc
        logger.info("%s transport disconnected", self.name)

    def on_event(self, key: str, handler: EventHandler) -> None:
        """Register a handler for a session id or WILDCARD."""
        self.router.register(key, handler)

    def off_event(self, key: str) -> bool:
        return self.router.unregister(key)

    async def flush(self) -> None:
        """Wait until every event emitted so far has been dispatched."""
        if self._pump_task is None or self._pump_task.done():
            return
        await self._bus.join()

    # ── implementation hooks ────────────────────────────────────────

    @abc.abstractmethod
    async def _open(self) -> None:
        """Backend-specific connect step."""

    @abc.abstractmethod
    async def _close(self) -> None:
        """Backend-specific disconnect step (only called when connected)."""

    @abc.abstractmethod
    async def _start_session(
        self, session_id: str, credential: str, working_directory: str,
    ) -> None:
        """Backend-specific session start."""

    @abc.abstractmethod
    async def _send_input(self, session_id: str, text: str) -> None:
        """Backend-specific input forwarding."""

    def _after_connect(self) -> None:
        """Called once the transport is connected and the pump is running."""

    # ── event plumbing ──────────────────────────────────────────────

    def _emit(self, event: TransportEvent, delay: float = 0.0) -> None:
        """Queue an event for in-order delivery to the router."""
        self._bus.emit(event, delay)

    def _connection_lost(self, reason: str) -> None:
        """The backend went away on its own.

        Operations fail with NotConnectedError from now on and connect()
        opens a fresh channel. Events already queued (such as the error
        describing the loss) are still delivered before the pump stops.
        """
        if not self._connected:
            return
        self._connected = False
        logger.warning("%s transport lost its connection: %s", self.name, reason)
        self._retire_task = asyncio.get_running_loop().create_task(
            self._retire_pump(), name=f"termlink-{self.name}-retire",
        )

    async def _retire_pump(self) -> None:
        await self.flush()
        if not self._connected:
            await self._stop_pump()

    def _require_connected(self, operation: str) -> None:
        if not self._connected:
            raise NotConnectedError(operation)

    def _start_pump(self) -> None:
        self._pump_task = asyncio.get_running_loop().create_task(
            self._pump(), name=f"termlink-{self.name}-pump",
        )

    async def _pump(self) -> None:
        async for event in self._bus.consume():
            self.router.dispatch(event)

    async def _stop_pump(self) -> None:
        task = self._pump_task
        self._pump_task = None
        if task is None or task.done():
            return
        task.cancel()
        if task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
