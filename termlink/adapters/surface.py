"""Terminal surface adapter - speaks the {type, data} envelope channel.

A rendering surface (xterm.js over a websocket, the Textual log) sends
``ready`` and ``input`` envelopes; the adapter answers with ``write``
envelopes carrying raw text to display.
"""
from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from termlink.shared.models.message import Message, MessageRole

from .orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)

BANNER = "Claude Code Mobile Terminal initialized\r\n$ "

# Signature: sink(envelope_json) -> None, sync or async
EnvelopeSink = Callable[[str], Awaitable[None] | None]


class TerminalSurface:
    """One surface connection bound to an orchestrator.

    Assistant output and error entries appended to the active session
    are written once the surface has reported ``ready``. User entries
    are not echoed.
    """

    def __init__(self, orchestrator: SessionOrchestrator, sink: EnvelopeSink) -> None:
        self.orchestrator = orchestrator
        self._sink = sink
        self._ready = False
        self._closed = False
        self._writes: set[asyncio.Task] = set()
        orchestrator.add_message_listener(self._on_message)

    @property
    def ready(self) -> bool:
        return self._ready

    async def handle_raw(self, text: str) -> None:
        try:
            envelope = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Invalid surface envelope %r: %s", text[:200], exc)
            return
        if not isinstance(envelope, dict):
            logger.warning("Surface envelope is not an object: %r", envelope)
            return
        await self.handle_envelope(envelope)

    async def handle_envelope(self, envelope: dict[str, Any]) -> None:
        kind = envelope.get("type")
        if kind == "ready":
            self._ready = True
            await self.write(BANNER)
        elif kind == "input":
            try:
                await self.orchestrator.send_command(str(envelope.get("data", "")))
            except Exception as exc:
                logger.error("Failed to handle surface input: %s", exc)
        else:
            logger.info("Unknown terminal message: %s", envelope)

    async def write(self, text: str) -> None:
        """Send one ``write`` envelope to the surface."""
        if self._closed:
            return
        result = self._sink(json.dumps({"type": "write", "data": text}))
        if inspect.isawaitable(result):
            await result

    async def drain(self) -> None:
        """Wait for writes scheduled by history updates."""
        while self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)

    def close(self) -> None:
        self._closed = True
        self.orchestrator.remove_message_listener(self._on_message)
        for task in self._writes:
            task.cancel()

    def _on_message(self, session_id: str, message: Message) -> None:
        if not self._ready or self._closed:
            return
        if session_id != self.orchestrator.registry.active_session_id:
            return
        if message.role is MessageRole.USER:
            return
        if message.role is not MessageRole.ASSISTANT and not message.is_error:
            return
        task = asyncio.get_running_loop().create_task(self._write_logged(str(message.content)))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write_logged(self, text: str) -> None:
        try:
            await self.write(text)
        except Exception:
            logger.exception("Surface write failed")
