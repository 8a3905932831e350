"""Simulated transport - canned, delayed responses with no backend.

Used on development machines and in tests where no host bridge exists.
Output for a given input is deterministic; only the SessionStarted pid
is random.
"""
from __future__ import annotations

import logging
import random
from datetime import datetime, timezone

from ..events import Output, SessionStarted
from ..message_router import MessageRouter
from .base import Transport

logger = logging.getLogger(__name__)

SENTINEL_SESSION_ID = "mock-session"
SENTINEL_PID = 12345

MOCK_RESPONSES: dict[str, str] = {
    "pwd": "/data/data/com.termux/files/home",
    "ls": "Documents\nDownloads\nstorage",
    "echo $PATH": "/data/data/com.termux/files/usr/bin",
    "node --version": "v18.19.0",
    "claude-code": "Claude Code v1.0.0 (Mock Mode)",
}


def simulated_response(text: str) -> str:
    """Return the simulated output for one line of input."""
    canned = MOCK_RESPONSES.get(text.strip())
    if canned is not None:
        return f"{canned}\n"
    return f"Mock response for: {text}\n"


class SimulatedTransport(Transport):
    """Transport that answers every call itself.

    - connect() emits SessionStarted for the sentinel "mock-session".
    - start_session() emits SessionStarted with a random pid after
      ``session_start_delay`` seconds.
    - send_input() emits Output(simulated_response(text)) after
      ``output_delay`` seconds.
    """

    def __init__(
        self,
        router: MessageRouter | None = None,
        *,
        session_start_delay: float = 1.0,
        output_delay: float = 0.5,
        event_queue_size: int = 5000,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(router=router, event_queue_size=event_queue_size)
        self.session_start_delay = session_start_delay
        self.output_delay = output_delay
        self._rng = rng or random.Random()
        self.started_sessions: list[str] = []

    @property
    def name(self) -> str:
        return "simulated"

    async def _open(self) -> None:
        logger.info("Simulated transport: connection established")

    def _after_connect(self) -> None:
        self._emit(SessionStarted(session_id=SENTINEL_SESSION_ID, pid=SENTINEL_PID))

    async def _close(self) -> None:
        self.started_sessions.clear()

    async def _start_session(
        self, session_id: str, credential: str, working_directory: str,
    ) -> None:
        self.started_sessions.append(session_id)
        self._emit(
            SessionStarted(session_id=session_id, pid=self._rng.randrange(10000)),
            delay=self.session_start_delay,
        )

    async def _send_input(self, session_id: str, text: str) -> None:
        self._emit(
            Output(
                session_id=session_id,
                data=simulated_response(text),
                timestamp=datetime.now(timezone.utc).isoformat(),
            ),
            delay=self.output_delay,
        )
