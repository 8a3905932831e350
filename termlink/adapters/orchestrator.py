"""Bridge between a transport and the session registry.

Owns the lifecycle (initialize, shutdown), session creation and command
forwarding, and translates TransportEvents into per-session history.
Frontends (TUI, web server) talk to this object only.
"""
from __future__ import annotations

import logging

from termlink.engine.errors import NoActiveSessionError, UnknownSessionError
from termlink.engine.events import (
    Error,
    Output,
    ProcessExit,
    ServerError,
    SessionStarted,
    TransportEvent,
)
from termlink.engine.message_router import WILDCARD
from termlink.engine.session_registry import MessageListener, SessionRegistry
from termlink.engine.transports.base import Transport
from termlink.shared.models.message import Message, MessageKind, MessageRole
from termlink.shared.models.session import DEFAULT_WORKING_DIRECTORY, Session

logger = logging.getLogger(__name__)


class SessionOrchestrator:
    """Coordinates one transport and one registry.

    Usage:
        orchestrator = SessionOrchestrator(SimulatedTransport())
        await orchestrator.initialize()
        session_id = await orchestrator.create_session("key", "/tmp")
        await orchestrator.send_command("ls")

    Transport failures are stored in ``last_error`` and re-raised to the
    caller of create_session() and send_command(). initialize() records
    the failure and reports it through ``is_connected`` instead.
    """

    def __init__(
        self,
        transport: Transport,
        registry: SessionRegistry | None = None,
        *,
        default_working_directory: str = DEFAULT_WORKING_DIRECTORY,
    ) -> None:
        self.transport = transport
        self.registry = registry if registry is not None else SessionRegistry()
        self.default_working_directory = default_working_directory
        self.last_error: str | None = None
        self._loading = False
        self._connected = False

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_connected(self) -> bool:
        return self._connected and self.transport.connected

    @property
    def active_session(self) -> Session | None:
        return self.registry.get_active()

    @property
    def sessions(self) -> list[Session]:
        return self.registry.sessions()

    # ── lifecycle ───────────────────────────────────────────────────

    async def initialize(self) -> bool:
        """Connect the transport and install the wildcard translator.

        Returns the resulting connected flag.
        """
        self.last_error = None
        self._loading = True
        try:
            await self.transport.connect()
            self.transport.on_event(WILDCARD, self._on_any_event)
            self._connected = True
            logger.info("Orchestrator initialized (%s transport)", self.transport.name)
        except Exception as exc:
            self._connected = False
            self.last_error = str(exc)
            logger.error("Failed to initialize transport: %s", exc)
        finally:
            self._loading = False
        return self._connected

    async def shutdown(self) -> None:
        """Disconnect the transport and drop all session state.

        Always calls disconnect(), even when initialize() never succeeded.
        """
        try:
            await self.transport.disconnect()
        except Exception as exc:
            self.last_error = str(exc)
            logger.error("Transport disconnect failed: %s", exc)
        finally:
            self._connected = False
            self.registry.clear()
        logger.info("Orchestrator shut down")

    # ── sessions ────────────────────────────────────────────────────

    async def create_session(
        self,
        credential: str,
        working_directory: str | None = None,
    ) -> str:
        """Register and select a new session, then ask the backend to start it."""
        self.last_error = None
        self._loading = True
        session = Session(
            working_directory=working_directory or self.default_working_directory,
        )
        try:
            self.registry.add_session(session)
            self.registry.set_active(session.id)
            self.transport.on_event(session.id, self._translate)
            await self.transport.start_session(
                session.id, credential, session.working_directory,
            )
        except Exception as exc:
            self.last_error = str(exc)
            logger.error("Failed to start session %s: %s", session.id, exc)
            raise
        finally:
            self._loading = False
        logger.info("Session created: %s", session.id)
        return session.id

    def set_active_session(self, session_id: str | None) -> None:
        self.registry.set_active(session_id)

    def terminate_session(self, session_id: str) -> Session:
        """Mark a session inactive and stop translating its events.

        Local only: the backend is not asked to stop anything. The
        history is kept.
        """
        if session_id not in self.registry:
            raise UnknownSessionError(session_id)
        self.transport.off_event(session_id)
        session = self.registry.deactivate(session_id)
        logger.info("Session terminated: %s", session_id)
        return session

    async def send_command(self, text: str) -> None:
        """Record *text* as user input on the active session and forward it."""
        self.last_error = None
        session = self.registry.get_active()
        if session is None:
            exc = NoActiveSessionError()
            self.last_error = str(exc)
            raise exc
        self.registry.append_message(
            session.id,
            Message(kind=MessageKind.TEXT, content=text, role=MessageRole.USER),
        )
        try:
            await self.transport.send_input(session.id, text)
        except Exception as exc:
            self.last_error = str(exc)
            logger.error("Failed to send input to %s: %s", session.id, exc)
            raise

    # ── listeners ───────────────────────────────────────────────────

    def add_message_listener(self, listener: MessageListener) -> None:
        self.registry.add_listener(listener)

    def remove_message_listener(self, listener: MessageListener) -> None:
        self.registry.remove_listener(listener)

    # ── event translation ───────────────────────────────────────────

    def _on_any_event(self, event: TransportEvent) -> None:
        # Sessions with a scoped handler are translated there.
        if event.session_id and self.transport.router.has_handler(event.session_id):
            return
        self._translate(event)

    def _translate(self, event: TransportEvent) -> None:
        session_id = event.session_id
        if not session_id:
            if isinstance(event, Error):
                logger.warning("Backend error without session: %s", event.text)
            elif isinstance(event, ServerError):
                logger.warning("Backend server error: %s", event.error)
            else:
                logger.debug("Dropping %s event without session id", event.kind)
            return

        if isinstance(event, SessionStarted):
            logger.info("Session %s started (pid=%s)", session_id, event.pid)
            return
        if isinstance(event, ProcessExit):
            logger.info("Session %s process exited (code=%s)", session_id, event.code)
            return

        session = self.registry.get(session_id)
        if session is not None and not session.is_active:
            logger.debug("Ignoring %s for terminated session %s", event.kind, session_id)
            return

        if isinstance(event, Output):
            message = Message(
                kind=MessageKind.TEXT,
                content=event.data,
                role=MessageRole.ASSISTANT,
            )
        elif isinstance(event, Error):
            message = Message(kind=MessageKind.ERROR, content=event.text, formatted=True)
        elif isinstance(event, ServerError):
            message = Message(kind=MessageKind.ERROR, content=event.error, formatted=True)
        else:
            logger.warning("Unhandled transport event: %s", event.kind)
            return
        if event.timestamp:
            message.timestamp = event.timestamp
        self.registry.append_message(session_id, message)
