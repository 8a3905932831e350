"""Message model for per-session terminal history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import itertools
import time
from typing import Any


_message_counter = itertools.count(1)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_message_id() -> str:
    """Timestamp plus a process-wide counter, so rapid appends never collide."""
    return f"msg-{int(time.time() * 1000)}-{next(_message_counter)}"


class MessageKind(Enum):
    TEXT = "text"
    CODE = "code"
    TOOL = "tool"
    ERROR = "error"
    MESSAGE = "message"


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    kind: MessageKind
    content: Any
    role: MessageRole | None = None
    # True when the content is already formatted for display.
    formatted: bool = False
    id: str = field(default_factory=new_message_id)
    timestamp: str = field(default_factory=utc_now_iso)

    @property
    def is_error(self) -> bool:
        return self.kind is MessageKind.ERROR

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "formatted": self.formatted,
        }
        if self.role is not None:
            d["role"] = self.role.value
        return d
