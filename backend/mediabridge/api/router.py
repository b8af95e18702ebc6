from __future__ import annotations
"""Master API router — mounts all sub-routers."""

from fastapi import APIRouter

from mediabridge.api.callbacks import router as callbacks_router
from mediabridge.api.metrics import router as metrics_router
from mediabridge.api.rpc import router as rpc_router
from mediabridge.api.tools import router as tools_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(tools_router, prefix="/tools", tags=["Tools"])
api_router.include_router(callbacks_router, prefix="/callbacks", tags=["Callbacks"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])

__all__ = ["api_router", "rpc_router"]
