"""
Health HTTP server: /healthz (alias /health and /), /readyz.
No secrets, no chat ids or reminder texts in responses.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from aiohttp import web

AppState = dict[str, Any]
StateProvider = Callable[[], AppState]


def _get_start_time(state: AppState) -> float:
    return state.get("start_time", time.monotonic())


def _get_version(state: AppState) -> str:
    return state.get("version", "unknown")


async def healthz(request: web.Request) -> web.Response:
    """Liveness: process is up."""
    state: AppState = request.app["state_provider"]()
    uptime = time.monotonic() - _get_start_time(state)
    body = {
        "status": "ok",
        "version": _get_version(state),
        "uptime_seconds": round(uptime, 2),
        "armed_reminders": int(state.get("armed_reminders", 0)),
    }
    return web.json_response(body)


async def readyz(request: web.Request) -> web.Response:
    """Readiness: 200 once boot recovery has completed, 503 before."""
    state: AppState = request.app["state_provider"]()
    ready = bool(state.get("boot_complete", False))
    return web.json_response({"ready": ready}, status=200 if ready else 503)


def create_app(state_provider: StateProvider) -> web.Application:
    app = web.Application()
    app["state_provider"] = state_provider
    app.router.add_get("/", healthz)
    app.router.add_get("/health", healthz)
    app.router.add_get("/healthz", healthz)
    app.router.add_get("/readyz", readyz)
    return app


async def start_health_http(
    host: str,
    port: int,
    state_provider: StateProvider,
) -> tuple[web.AppRunner, web.TCPSite]:
    """Create runner and start site. Caller must call runner.cleanup() on shutdown."""
    app = create_app(state_provider)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    return runner, site
