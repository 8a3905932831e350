"""HTTP + websocket server exposing sessions to a browser terminal.

REST endpoints manage sessions; ``GET /terminal`` upgrades to a
websocket that carries surface envelopes ({type, data}) for xterm.js
or any other renderer.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any

from aiohttp import WSMsgType, web

from termlink.adapters.orchestrator import SessionOrchestrator
from termlink.adapters.surface import TerminalSurface
from termlink.engine.errors import UnknownSessionError

logger = logging.getLogger(__name__)


class TerminalServer:
    """aiohttp application around one SessionOrchestrator.

    The orchestrator is initialized on application startup and shut
    down on cleanup, so both the standalone server and aiohttp's test
    client drive the same lifecycle.
    """

    def __init__(
        self,
        orchestrator: SessionOrchestrator,
        host: str = "127.0.0.1",
        port: int = 8765,
        *,
        default_credential: str = "",
    ) -> None:
        self.orchestrator = orchestrator
        self._host = host
        self._port = port
        self._default_credential = default_credential
        self._websockets: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self._app = web.Application(middlewares=[self._request_logging_middleware])
        self._app.on_startup.append(self._on_startup)
        self._app.on_shutdown.append(self._on_shutdown)
        self._app.on_cleanup.append(self._on_cleanup)
        self._setup_routes()

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def port(self) -> int:
        return self._port

    # ── Middleware ──

    @web.middleware
    async def _request_logging_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        req_id = request.headers.get("x-termlink-request-id", str(uuid.uuid4())[:8])
        start = time.monotonic()
        try:
            response = await handler(request)
        except Exception:
            logger.exception("HTTP %s %s req=%s failed", request.method, request.path_qs, req_id)
            raise
        logger.info(
            "HTTP %s %s req=%s status=%s duration_ms=%.1f",
            request.method, request.path_qs, req_id,
            getattr(response, "status", "?"), (time.monotonic() - start) * 1000,
        )
        return response

    # ── Route setup ──

    def _setup_routes(self) -> None:
        r = self._app.router
        r.add_get("/health", self._handle_health)
        r.add_get("/sessions", self._handle_list_sessions)
        r.add_post("/sessions", self._handle_create_session)
        r.add_get("/sessions/{id}/messages", self._handle_get_messages)
        r.add_post("/sessions/{id}/activate", self._handle_activate_session)
        r.add_post("/sessions/{id}/terminate", self._handle_terminate_session)
        r.add_get("/terminal", self._handle_terminal)

    # ── Lifecycle ──

    async def _on_startup(self, app: web.Application) -> None:
        await self.orchestrator.initialize()

    async def _on_shutdown(self, app: web.Application) -> None:
        for ws in list(self._websockets):
            await ws.close(code=1001, message=b"Server shutdown")

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.orchestrator.shutdown()

    async def start(self) -> None:
        """Bind the listening socket. Returns once the site is up."""
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        actual_port = self._resolve_port(site, self._runner)
        if actual_port is not None:
            self._port = actual_port
        logger.info("termlink server listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        runner = self._runner
        self._runner = None
        await runner.cleanup()
        logger.info("termlink server stopped")

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await asyncio.Event().wait()
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("Server shutting down")
        finally:
            await self.stop()

    @staticmethod
    def _resolve_port(site, runner) -> int | None:
        sockets = getattr(getattr(site, "_server", None), "sockets", None) or ()
        if sockets:
            return sockets[0].getsockname()[1]
        addresses = getattr(runner, "addresses", None) or ()
        if addresses:
            first = addresses[0]
            if isinstance(first, tuple) and len(first) >= 2:
                return int(first[1])
        return None

    # ── Handlers ──

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "connected": self.orchestrator.is_connected,
            "mode": self.orchestrator.transport.name,
        })

    async def _handle_list_sessions(self, request: web.Request) -> web.Response:
        return web.json_response({
            "sessions": [
                s.to_dict(include_messages=False) for s in self.orchestrator.sessions
            ],
            "active_session_id": self.orchestrator.registry.active_session_id,
        })

    async def _handle_create_session(self, request: web.Request) -> web.Response:
        body: dict[str, Any] = {}
        if request.can_read_body:
            try:
                body = await request.json()
            except json.JSONDecodeError:
                return web.json_response({"error": "Invalid JSON body"}, status=400)
            if not isinstance(body, dict):
                return web.json_response({"error": "Body must be an object"}, status=400)
        credential = body.get("credential") or self._default_credential
        try:
            session_id = await self.orchestrator.create_session(
                credential, body.get("working_directory"),
            )
        except Exception:
            return web.json_response({"error": self.orchestrator.last_error}, status=502)
        session = self.orchestrator.registry.get(session_id)
        return web.json_response(session.to_dict(include_messages=False), status=201)

    async def _handle_get_messages(self, request: web.Request) -> web.Response:
        session = self.orchestrator.registry.get(request.match_info["id"])
        if session is None:
            return web.json_response({"error": "Session not found"}, status=404)
        return web.json_response({
            "session_id": session.id,
            "messages": [m.to_dict() for m in session.messages],
        })

    async def _handle_activate_session(self, request: web.Request) -> web.Response:
        session_id = request.match_info["id"]
        try:
            self.orchestrator.set_active_session(session_id)
        except UnknownSessionError as exc:
            return web.json_response({"error": str(exc)}, status=404)
        return web.json_response({"active_session_id": session_id})

    async def _handle_terminate_session(self, request: web.Request) -> web.Response:
        try:
            session = self.orchestrator.terminate_session(request.match_info["id"])
        except UnknownSessionError as exc:
            return web.json_response({"error": str(exc)}, status=404)
        return web.json_response(session.to_dict(include_messages=False))

    async def _handle_terminal(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)
        self._websockets.add(ws)
        surface = TerminalSurface(self.orchestrator, ws.send_str)
        logger.info("Terminal surface connected from %s", request.remote)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await surface.handle_raw(msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning("Terminal websocket error: %s", ws.exception())
        finally:
            surface.close()
            self._websockets.discard(ws)
            logger.info("Terminal surface disconnected")
        return ws
