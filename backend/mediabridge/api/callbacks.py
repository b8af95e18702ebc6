"""Webhook receiver for Kie.ai task completion callbacks.

Generation tools accept a ``callBackUrl``; pointing it at
``/api/callbacks/kie`` lets the provider push the final state instead of
waiting for the next ``get_task_status`` poll.

Kie.ai does not sign callbacks. Without ``KIE_AI_CALLBACK_SECRET`` anyone who
can reach this endpoint can write status and result URLs for a known task id.
With it set, the callback URL must carry ``?token=<secret>``.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from mediabridge.api.deps import get_bridge
from mediabridge.bootstrap import Bridge
from mediabridge.schemas.upstream import FlagRecord, KieEnvelope, PlaygroundRecord, StatusRecord
from mediabridge.services.gateway import UpstreamStatus
from mediabridge.services.task_store import TaskNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


def _callback_record(envelope: KieEnvelope) -> StatusRecord:
    """Type the pushed ``data`` object by family.

    Playground (nano-banana) callbacks repeat the ``recordInfo`` shape with
    ``state``/``resultJson``. The rest carry the outcome in ``code`` with
    results under ``info`` or ``response``.
    """
    data: dict[str, Any] = envelope.data if isinstance(envelope.data, dict) else {}
    task_id = str(data["taskId"]) if data.get("taskId") else None

    if "state" in data or "resultJson" in data:
        return PlaygroundRecord.model_validate({**data, "taskId": task_id})

    return FlagRecord.model_validate({
        "taskId": task_id,
        "successFlag": 1 if envelope.ok else 2,
        "response": data.get("info") or data.get("response") or data,
        "errorMessage": None if envelope.ok else (envelope.msg or "Generation failed"),
    })


def _check_token(bridge: Bridge, token: str | None) -> None:
    secret = bridge.settings.KIE_AI_CALLBACK_SECRET
    if not secret:
        return
    if token is None or not hmac.compare_digest(token.encode(), secret.encode()):
        logger.warning("Rejected callback with missing or wrong token")
        raise HTTPException(status_code=401, detail="Invalid callback token")


@router.post("/kie")
async def kie_callback(
    payload: dict[str, Any],
    token: Optional[str] = Query(None),
    bridge: Bridge = Depends(get_bridge),
) -> dict[str, Any]:
    """Apply a pushed task outcome to the local record."""
    _check_token(bridge, token)

    try:
        envelope = KieEnvelope.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=422, detail="Callback body is not a Kie.ai envelope")

    data = envelope.data if isinstance(envelope.data, dict) else {}
    task_id = data.get("taskId")
    if not task_id:
        raise HTTPException(status_code=422, detail="Callback carries no taskId")

    try:
        record = _callback_record(envelope)
    except ValidationError:
        raise HTTPException(status_code=422, detail="Callback data does not match a known shape")

    status = UpstreamStatus(
        endpoint="callback",
        code=envelope.code,
        msg=envelope.msg,
        record=record,
        raw=envelope.model_dump(),
    )
    try:
        task = await bridge.resolver.apply_callback(str(task_id), status)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    logger.info("Callback applied: task=%s status=%s", task.task_id, task.status)
    return {"success": True, "task": task.model_dump(mode="json")}
