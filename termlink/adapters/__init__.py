"""Adapters package - Bridge between the session core and UI frontends.

This package contains the session orchestrator and the terminal surface
adapter that connect the engine to the TUI and web frontends.
"""
from __future__ import annotations

__all__ = [
    "SessionOrchestrator",
    "TerminalSurface",
]

from termlink.adapters.orchestrator import SessionOrchestrator
from termlink.adapters.surface import TerminalSurface
