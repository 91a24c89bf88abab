"""
FastAPI application factory for the drain monitor.

Routes:
- /api/* -> REST API (stats, manual override, session reset, status, profiles)
- /ws -> overlay event stream
- / -> overlay page, when a built overlay directory is present
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from runtime.context import RuntimeContext
from .routes import api, overlay


def create_app(ctx: RuntimeContext, overlay_dir: Optional[str] = "overlay") -> FastAPI:
    """Create the FastAPI app bound to a runtime context."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Broadcasts from the pipeline thread are delivered on this loop
        await ctx.hub.start()
        try:
            yield
        finally:
            await ctx.hub.stop()

    app = FastAPI(
        title="Drain Monitor",
        version="0.1.0",
        description="Pinball drain detection: stats, overrides and live overlay events",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    # Overlay pages may be served from a dev server on another port
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    app.include_router(overlay.router)

    if overlay_dir and Path(overlay_dir).is_dir():
        app.mount("/", StaticFiles(directory=overlay_dir, html=True), name="overlay")

    return app
