"""Event types emitted by transports.

Each backend notification is parsed into a typed dataclass. The
``kind`` class attribute is the wire ``type`` tag; payload fields only
exist on the variant they belong to.

Wire format (one JSON object per event):
    {"type": "OUTPUT", "sessionId": "...", "data": "...", "timestamp": "..."}
"""
from __future__ import annotations

from dataclasses import dataclass, fields
import json
from typing import Any, ClassVar, Union


@dataclass
class TransportEvent:
    """Base event. Never emitted directly; use one of the variants."""
    kind: ClassVar[str] = ""
    session_id: str | None = None
    timestamp: str | None = None


@dataclass
class SessionStarted(TransportEvent):
    kind: ClassVar[str] = "SESSION_STARTED"
    pid: int = 0


@dataclass
class Output(TransportEvent):
    kind: ClassVar[str] = "OUTPUT"
    data: str = ""


@dataclass
class Error(TransportEvent):
    kind: ClassVar[str] = "ERROR"
    data: str | None = None
    error: str | None = None

    @property
    def text(self) -> str | None:
        return self.data if self.data is not None else self.error


@dataclass
class ProcessExit(TransportEvent):
    kind: ClassVar[str] = "PROCESS_EXIT"
    code: int = 0


@dataclass
class ServerError(TransportEvent):
    kind: ClassVar[str] = "SERVER_ERROR"
    error: str = ""


AnyTransportEvent = Union[SessionStarted, Output, Error, ProcessExit, ServerError]

# Map of wire type strings to dataclass constructors
_EVENT_MAP: dict[str, type[TransportEvent]] = {
    cls.kind: cls
    for cls in (SessionStarted, Output, Error, ProcessExit, ServerError)
}

# Wire key -> dataclass field
_WIRE_FIELDS: dict[str, str] = {
    "sessionId": "session_id",
    "timestamp": "timestamp",
    "pid": "pid",
    "data": "data",
    "code": "code",
    "error": "error",
}
_FIELD_TO_WIRE = {v: k for k, v in _WIRE_FIELDS.items()}


def event_from_wire(data: dict[str, Any]) -> TransportEvent:
    """Convert a backend JSON object to a typed event.

    Raises ValueError for non-objects and unknown ``type`` tags. Keys
    that do not belong to the variant are ignored.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Transport event must be an object, got {type(data).__name__}")
    kind = data.get("type", "")
    cls = _EVENT_MAP.get(kind)
    if cls is None:
        raise ValueError(f"Unknown transport event type: {kind!r}")
    valid_fields = {f.name for f in fields(cls)}
    kwargs = {
        _WIRE_FIELDS[k]: v
        for k, v in data.items()
        if k in _WIRE_FIELDS and _WIRE_FIELDS[k] in valid_fields
    }
    return cls(**kwargs)


def event_from_json(text: str) -> TransportEvent:
    """Parse one serialized event. json.JSONDecodeError is a ValueError."""
    return event_from_wire(json.loads(text))


def event_to_wire(event: TransportEvent) -> dict[str, Any]:
    """Convert a typed event back to its wire dict, omitting unset fields."""
    d: dict[str, Any] = {"type": event.kind}
    for f in fields(event):
        val = getattr(event, f.name)
        if val is not None:
            d[_FIELD_TO_WIRE.get(f.name, f.name)] = val
    return d
