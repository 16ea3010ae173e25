"""
FastAPI application — local focus-session API.
Runs on http://127.0.0.1:8765 by default.

Singletons (store, bridge, lifecycle manager) live on app.state so that each
call to create_app() produces a fully independent instance with no shared
module-level globals. This makes test isolation straightforward.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..config import config
from ..host.bridge import ExtensionBridge
from ..session.lifecycle import SessionLifecycleManager
from ..session.store import SessionStore
from .protocol import session_out


# ---------------------------------------------------------------------------
# Lifespan — process wake-up and shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    session_path = app.state.session_path or config.session_path
    app.state.bridge = ExtensionBridge(timeout_s=config.bridge_timeout_s)
    app.state.manager = SessionLifecycleManager(
        SessionStore(session_path),
        app.state.bridge,
        keepalive_interval_s=config.keepalive_interval_s,
        redirect_delay_s=config.redirect_delay_ms / 1000.0,
    )
    broadcasts: set[asyncio.Task] = set()

    def _on_session_change(snapshot):
        body = session_out(snapshot).model_dump(by_alias=True)
        task = asyncio.get_running_loop().create_task(
            app.state.bridge.broadcast("sessionChanged", session=body)
        )
        broadcasts.add(task)
        task.add_done_callback(broadcasts.discard)

    app.state.manager.register_listener(_on_session_change)

    # Wake-up: adopt or retire whatever session the last process left behind
    app.state.manager.reconcile()

    yield

    app.state.manager.shutdown()
    for task in list(broadcasts):
        task.cancel()


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(session_path: Optional[Path] = None) -> FastAPI:
    app = FastAPI(
        title="Padlock",
        description="Local focus-session service for the Padlock browser extension",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session_path = session_path

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"chrome-extension://.*",
        allow_origins=["null"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import extension, focus, messages, settings, tabs

    app.include_router(focus.router)
    app.include_router(messages.router)
    app.include_router(tabs.router)
    app.include_router(extension.router)
    app.include_router(settings.router)

    @app.get("/health")
    def health(request: Request):
        bridge = getattr(request.app.state, "bridge", None)
        return {
            "status": "ok",
            "version": "0.1.0",
            "extension_connected": bool(bridge and bridge.connected),
        }

    return app


app = create_app()
