"""Session/transport core: events, routing, registry and transports."""
from .config import TransportConfig
from .errors import (
    BackendReportedError,
    DuplicateSessionError,
    NoActiveSessionError,
    NotConnectedError,
    TermlinkError,
    TransportConnectionError,
    UnknownSessionError,
)
from .events import (
    Error,
    Output,
    ProcessExit,
    ServerError,
    SessionStarted,
    TransportEvent,
    event_from_json,
    event_from_wire,
    event_to_wire,
)
from .message_router import WILDCARD, MessageRouter
from .session_registry import SessionRegistry

__all__ = [
    # Config
    "TransportConfig",
    # Errors
    "TermlinkError",
    "TransportConnectionError",
    "NotConnectedError",
    "NoActiveSessionError",
    "UnknownSessionError",
    "DuplicateSessionError",
    "BackendReportedError",
    # Events
    "TransportEvent",
    "SessionStarted",
    "Output",
    "Error",
    "ProcessExit",
    "ServerError",
    "event_from_wire",
    "event_from_json",
    "event_to_wire",
    # Routing and state
    "WILDCARD",
    "MessageRouter",
    "SessionRegistry",
]
