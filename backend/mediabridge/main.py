from __future__ import annotations
"""kie-mediabridge — FastAPI application entry point.

Hosts the tool dispatcher behind a JSON-RPC endpoint (``POST /rpc``) plus REST
conveniences, and wires up storage and the Kie.ai gateway on startup.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from mediabridge import __version__
from mediabridge.api.router import api_router, rpc_router
from mediabridge.bootstrap import start_bridge
from mediabridge.config import Settings, get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_settings: Configuration; defaults to the cached process settings.
        transport: Optional httpx transport for the upstream client.
    """
    app_settings = app_settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: build services on startup, close on shutdown."""
        logger.info("%s starting up...", app_settings.APP_NAME)
        logger.info("Upstream: %s", app_settings.KIE_AI_BASE_URL)
        logger.info("Database: %s", app_settings.KIE_AI_DB_PATH)

        app.state.bridge = await start_bridge(app_settings, transport=transport)

        yield

        await app.state.bridge.aclose()
        logger.info("%s shut down", app_settings.APP_NAME)

    app = FastAPI(
        title="kie-mediabridge",
        description="Kie.ai image and video generation APIs exposed as RPC tools",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    app.include_router(rpc_router)
    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"service": app_settings.APP_NAME, "status": "running"}

    @app.get("/health")
    async def health():
        """Detailed health check."""
        bridge = app.state.bridge
        return {
            "status": "healthy",
            "database": app_settings.KIE_AI_DB_PATH,
            "upstream": app_settings.KIE_AI_BASE_URL,
            "tools": len(bridge.dispatcher.tool_names),
            "strict_transitions": app_settings.STRICT_STATUS_TRANSITIONS,
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="debug" if settings.DEBUG else "info")
