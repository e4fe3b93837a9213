"""FastAPI application factory for the party queue gateway."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .bootstrap import bootstrap_state
from .config import Settings, get_settings
from .errors import PartyQueueError
from .routers import auth_router, playback_router, queue_router, vibe_router
from .state import RuntimeState
from .utils import log_debug


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    runtime_state = RuntimeState()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        print("Starting Spotify Party Queue server...")
        bootstrap_state(runtime_state, settings)
        print("Server initialization completed.")
        yield
        print("Server shutdown completed.")

    app = FastAPI(title="Spotify Party Queue", lifespan=lifespan)
    app.state.settings = settings
    app.state.runtime_state = runtime_state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_urls,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PartyQueueError)
    async def _party_queue_error(request: Request, exc: PartyQueueError) -> JSONResponse:
        log_debug(settings, f"{request.method} {request.url.path} -> {exc.kind.value}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(auth_router.router)
    app.include_router(playback_router.router)
    app.include_router(queue_router.router)
    app.include_router(vibe_router.router)

    return app
