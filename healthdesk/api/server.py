"""FastAPI server for the health report API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from healthdesk.api.health_routes import health_router
from healthdesk.config import Settings, settings as default_settings
from healthdesk.health.cache import CacheStore
from healthdesk.health.errors import HealthdeskError

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Healthdesk-Token"


# ── Auth middleware ───────────────────────────────────────────────────────────


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Reject requests missing or having an invalid X-Healthdesk-Token header."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Skip auth if no token is configured (dev mode)
        token = request.app.state.settings.api_token
        if not token:
            return await call_next(request)

        provided = request.headers.get(TOKEN_HEADER, "")
        if provided != token:
            return JSONResponse(
                status_code=401,
                content={"success": False, "message": f"Invalid or missing {TOKEN_HEADER}", "data": None},
            )

        return await call_next(request)


# ── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared snapshot cache; everything else is built per request."""
    if getattr(app.state, "cache", None) is None:
        app.state.cache = CacheStore(app.state.settings.cache_db_path)
    logger.info("Health cache at %s", app.state.cache.db_path)

    yield

    app.state.cache.close()


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(settings: Settings | None = None, cache: CacheStore | None = None) -> FastAPI:
    """Create the health API application."""
    app = FastAPI(
        title="healthdesk - Site Health Report",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or default_settings
    app.state.cache = cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TokenAuthMiddleware)

    @app.exception_handler(HealthdeskError)
    async def healthdesk_error(request: Request, exc: HealthdeskError) -> JSONResponse:
        logger.error("Request to %s failed: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": str(exc), "data": None},
        )

    app.include_router(health_router, prefix="/api")

    return app
