from __future__ import annotations

import pytest

from termlink.adapters.orchestrator import SessionOrchestrator
from termlink.engine.transports.simulated import SimulatedTransport, simulated_response
from termlink.shared.models.message import MessageRole
from termlink.tui.app import TerminalApp, TerminalLog


class _OfflineTransport(SimulatedTransport):
    async def _open(self) -> None:
        raise OSError("backend socket missing")


def _app(transport=None) -> TerminalApp:
    transport = transport or SimulatedTransport(session_start_delay=0.0, output_delay=0.0)
    return TerminalApp(
        SessionOrchestrator(transport),
        credential="k",
        working_directory="/tmp",
    )


@pytest.mark.asyncio
async def test_mount_connects_and_creates_session():
    app = _app()
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.pause()

        orch = app.orchestrator
        assert orch.is_connected
        assert orch.active_session is not None
        assert orch.active_session.working_directory == "/tmp"
        assert app.surface.ready
        assert "simulated" in app.sub_title


@pytest.mark.asyncio
async def test_submitted_input_reaches_session_history():
    app = _app()
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.pause()

        await pilot.press("l", "s", "enter")
        await pilot.pause()
        await app.orchestrator.transport.flush()
        await app.surface.drain()
        await pilot.pause()

        messages = app.orchestrator.active_session.messages
        assert [(m.role, m.content) for m in messages] == [
            (MessageRole.USER, "ls"),
            (MessageRole.ASSISTANT, simulated_response("ls")),
        ]
        assert app.query_one("#terminal-input").value == ""
        assert app.query_one(TerminalLog) is not None


@pytest.mark.asyncio
async def test_connection_failure_skips_session_creation():
    app = _app(_OfflineTransport())
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.pause()

        assert not app.orchestrator.is_connected
        assert "backend socket missing" in app.orchestrator.last_error
        assert app.orchestrator.sessions == []
        assert "offline" in app.sub_title


@pytest.mark.asyncio
async def test_ctrl_q_quits_and_shuts_down():
    app = _app()
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.pause()
        assert app.is_running

        await pilot.press("ctrl+q")
        await pilot.pause()

    assert not app.is_running
    assert not app.orchestrator.is_connected
    assert app.orchestrator.sessions == []
