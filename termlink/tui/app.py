"""termlink TUI - Textual application class."""

from __future__ import annotations

import json
import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Input, RichLog

from termlink.adapters.orchestrator import SessionOrchestrator
from termlink.adapters.surface import TerminalSurface

logger = logging.getLogger(__name__)


class TerminalLog(RichLog):
    """Scrollback for terminal output written through the surface."""

    def __init__(self, **kwargs) -> None:
        super().__init__(
            auto_scroll=True,
            wrap=True,
            markup=False,
            highlight=False,
            max_lines=5000,
            **kwargs,
        )


class TerminalApp(App):
    """Terminal UI driving one SessionOrchestrator."""

    TITLE = "termlink"
    SUB_TITLE = "Terminal session"
    CSS = """
    TerminalLog {
        height: 1fr;
        border: round $primary;
    }
    #terminal-input {
        dock: bottom;
    }
    """

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        orchestrator: SessionOrchestrator,
        credential: str = "",
        working_directory: str | None = None,
    ) -> None:
        super().__init__()
        self.orchestrator = orchestrator
        self.credential = credential
        self.working_directory = working_directory
        self.surface: TerminalSurface | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield TerminalLog(id="terminal-log")
        yield Input(placeholder="Type a command and press Enter", id="terminal-input")
        yield Footer()

    async def on_mount(self) -> None:
        self.surface = TerminalSurface(self.orchestrator, self._write_envelope)
        await self.orchestrator.initialize()
        if not self.orchestrator.is_connected:
            self.notify(
                f"Connection failed: {self.orchestrator.last_error}",
                severity="error",
            )
        elif self.orchestrator.active_session is None:
            try:
                await self.orchestrator.create_session(
                    self.credential, self.working_directory,
                )
            except Exception:
                self.notify(
                    f"Could not start session: {self.orchestrator.last_error}",
                    severity="error",
                )
        self._refresh_status()
        await self.surface.handle_envelope({"type": "ready"})
        self.query_one("#terminal-input", Input).focus()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value
        event.input.value = ""
        if not text.strip() or self.surface is None:
            return
        self.query_one(TerminalLog).write(Text(text))
        await self.surface.handle_envelope({"type": "input", "data": text})
        if self.orchestrator.last_error:
            self.notify(self.orchestrator.last_error, severity="warning")

    async def on_unmount(self) -> None:
        if self.surface is not None:
            self.surface.close()
        await self.orchestrator.shutdown()

    def _write_envelope(self, envelope_json: str) -> None:
        envelope = json.loads(envelope_json)
        data = str(envelope.get("data", "")).replace("\r\n", "\n").rstrip("\n")
        self.query_one(TerminalLog).write(Text(data))

    def _refresh_status(self) -> None:
        state = "connected" if self.orchestrator.is_connected else "offline"
        session = self.orchestrator.active_session
        label = session.id if session is not None else "no session"
        self.sub_title = f"{self.orchestrator.transport.name} · {state} · {label}"
