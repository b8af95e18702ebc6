from __future__ import annotations
"""Metrics API — upstream usage statistics and status endpoint catalogue."""

from fastapi import APIRouter, Depends

from mediabridge.api.deps import get_bridge
from mediabridge.bootstrap import Bridge

router = APIRouter()


@router.get("/gateway")
async def gateway_metrics(bridge: Bridge = Depends(get_bridge)):
    """Return call counts, error rate and latency for the Kie.ai gateway."""
    return bridge.gateway.get_metrics()


@router.get("/endpoints")
async def status_endpoints(bridge: Bridge = Depends(get_bridge)):
    """List the status-check candidates per provider tag, in probe order."""
    return {"providers": bridge.registry.to_dict_list()}
