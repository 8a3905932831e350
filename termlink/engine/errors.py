"""Exception hierarchy for the session/transport core.

Transport faults are raised to the caller and recorded by the
orchestrator. Registry lookups that can legitimately race with
cleanup (late events) never raise; see SessionRegistry.append_message.
"""
from __future__ import annotations


class TermlinkError(Exception):
    """Base exception for all termlink errors."""


class TransportConnectionError(TermlinkError, ConnectionError):
    """Connecting to (or disconnecting from) the backend failed."""
    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot connect to {target}: {reason}")


class NotConnectedError(TermlinkError):
    """Operation attempted before a successful connect()."""
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Transport is not connected (attempted {operation})"
        )


class NoActiveSessionError(TermlinkError):
    """A command was sent while no session is selected."""
    def __init__(self) -> None:
        super().__init__("No active session")


class UnknownSessionError(TermlinkError):
    """Operation referenced a session id that is not registered."""
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Unknown session: {session_id}")


class DuplicateSessionError(TermlinkError):
    """A session with the same id is already registered."""
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session already registered: {session_id}")


class BackendReportedError(TermlinkError):
    """The backend itself reported a failure for an operation.

    Raised when the host bridge answers a request with a failure
    outcome. Errors arriving as events are not raised; they become
    history entries.
    """
    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"Backend rejected {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
