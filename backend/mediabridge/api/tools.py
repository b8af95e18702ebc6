from __future__ import annotations
"""REST access to the tool catalogue (same dispatcher as the RPC endpoint)."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from mediabridge.api.deps import get_bridge
from mediabridge.bootstrap import Bridge
from mediabridge.services.dispatcher import ToolNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_tools(bridge: Bridge = Depends(get_bridge)) -> dict[str, Any]:
    """List every tool with its JSON input schema."""
    tools = bridge.dispatcher.list_tools()
    return {"tools": tools, "total": len(tools)}


@router.post("/{tool_name}")
async def call_tool(
    tool_name: str,
    arguments: Optional[dict[str, Any]] = Body(None),
    bridge: Bridge = Depends(get_bridge),
):
    """Invoke a tool; the body is its argument object."""
    try:
        outcome = await bridge.dispatcher.handle(tool_name, arguments or {})
    except ToolNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Unhandled error in tool %s", tool_name)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal error", "error_type": "internal"},
        )
    return outcome.to_dict()
