"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from mediabridge.bootstrap import Bridge


def get_bridge(request: Request) -> Bridge:
    """The services built in the application lifespan."""
    return request.app.state.bridge
