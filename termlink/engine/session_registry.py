"""Session registry - ordered session state plus the selected session.

Pure state container: no transport logic, no I/O. Everything that
mutates session state goes through these operations.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from termlink.shared.models.message import Message
from termlink.shared.models.session import Session

from .errors import DuplicateSessionError, UnknownSessionError

logger = logging.getLogger(__name__)

# Signature: callback(session_id, message) -> None
MessageListener = Callable[[str, Message], None]


class SessionRegistry:
    """Insertion-ordered mapping of session id to Session.

    Policies:
    - add_session() rejects an id that is already registered.
    - set_active() raises UnknownSessionError for unknown ids.
    - append_message() is a silent no-op for unknown ids, because events
      can arrive after their session was cleared.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._active_session_id: str | None = None
        self._listeners: list[MessageListener] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def active_session_id(self) -> str | None:
        return self._active_session_id

    def add_session(self, session: Session) -> None:
        if session.id in self._sessions:
            raise DuplicateSessionError(session.id)
        self._sessions[session.id] = session
        logger.debug(
            "Session added: %s (cwd=%s)", session.id, session.working_directory,
        )

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def set_active(self, session_id: str | None) -> None:
        """Select *session_id*; None clears the selection."""
        if session_id is not None and session_id not in self._sessions:
            raise UnknownSessionError(session_id)
        self._active_session_id = session_id

    def get_active(self) -> Session | None:
        if self._active_session_id is None:
            return None
        return self._sessions.get(self._active_session_id)

    def append_message(self, session_id: str, message: Message) -> bool:
        """Append to a session's history. Returns False for unknown ids."""
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug(
                "Dropping message %s for unknown session %s",
                message.id, session_id,
            )
            return False
        session.messages.append(message)
        self._notify(session_id, message)
        return True

    def deactivate(self, session_id: str) -> Session:
        """Mark a session inactive and deselect it if it was selected."""
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        session.is_active = False
        if self._active_session_id == session_id:
            self._active_session_id = None
        return session

    def clear(self) -> None:
        self._sessions.clear()
        self._active_session_id = None

    # ── listeners ──────────────────────────────────────────────────

    def add_listener(self, listener: MessageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self, session_id: str, message: Message) -> None:
        for listener in list(self._listeners):
            try:
                listener(session_id, message)
            except Exception:
                logger.exception(
                    "Message listener failed for session %s", session_id,
                )
