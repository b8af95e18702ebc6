"""JSON-RPC 2.0 endpoint exposing ``tools/list`` and ``tools/call``."""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from mediabridge.api.deps import get_bridge
from mediabridge.bootstrap import Bridge
from mediabridge.services.dispatcher import ToolNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class RpcRequest(BaseModel):
    jsonrpc: Literal["2.0"]
    method: str
    id: Optional[Union[int, str]] = None
    params: Optional[dict[str, Any]] = None


class ToolCallParams(BaseModel):
    name: str
    arguments: Optional[dict[str, Any]] = None


def _result(request_id: int | str | None, result: dict[str, Any]) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": request_id, "result": result})


def _error(request_id: int | str | None, code: int, message: str) -> JSONResponse:
    return JSONResponse({
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    })


@router.post("/rpc")
async def rpc(request: Request, bridge: Bridge = Depends(get_bridge)) -> JSONResponse:
    """Dispatch one JSON-RPC request to the tool dispatcher."""
    try:
        body = await request.json()
    except ValueError:
        return _error(None, PARSE_ERROR, "Parse error")

    try:
        call = RpcRequest.model_validate(body)
    except ValidationError:
        request_id = body.get("id") if isinstance(body, dict) else None
        return _error(request_id, INVALID_REQUEST, "Invalid Request")

    dispatcher = bridge.dispatcher

    if call.method == "tools/list":
        return _result(call.id, {"tools": dispatcher.list_tools()})

    if call.method == "tools/call":
        try:
            params = ToolCallParams.model_validate(call.params or {})
        except ValidationError:
            return _error(call.id, INVALID_PARAMS, "tools/call requires a tool name")
        try:
            outcome = await dispatcher.handle(params.name, params.arguments)
        except ToolNotFoundError as e:
            return _error(call.id, METHOD_NOT_FOUND, str(e))
        except Exception:
            logger.exception("Unhandled error in tool %s", params.name)
            return _error(call.id, INTERNAL_ERROR, "Internal error")
        return _result(call.id, outcome.to_dict())

    return _error(call.id, METHOD_NOT_FOUND, f"Method not found: {call.method}")
