"""Session state - one terminal conversation and its ordered history."""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any
import uuid

from termlink.shared.models.message import Message


DEFAULT_WORKING_DIRECTORY = "/storage/emulated/0"


def new_session_id() -> str:
    return f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


@dataclass
class Session:
    """Holds the history of one terminal session.

    ``working_directory`` is fixed at creation. ``messages`` only ever
    grows, in arrival order; append through SessionRegistry.append_message.
    """

    id: str = field(default_factory=new_session_id)
    working_directory: str = DEFAULT_WORKING_DIRECTORY
    is_active: bool = True
    messages: list[Message] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def to_dict(self, include_messages: bool = True) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "working_directory": self.working_directory,
            "is_active": self.is_active,
            "message_count": self.message_count,
        }
        if include_messages:
            d["messages"] = [m.to_dict() for m in self.messages]
        return d
