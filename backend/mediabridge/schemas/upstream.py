"""Typed views of Kie.ai upstream responses.

Every Kie.ai endpoint wraps its answer in ``{"code", "msg", "data"}``. The
shape of ``data`` for status checks depends on the provider family, so each
family gets its own record model and the Resolver only ever sees one of these
(or ``None`` when the upstream has no such task).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mediabridge.models.task import TaskStatus

logger = logging.getLogger(__name__)

KIE_SUCCESS_CODE = 200


class KieEnvelope(BaseModel):
    """Outer ``{code, msg, data}`` wrapper shared by all endpoints."""

    model_config = ConfigDict(extra="allow")

    code: int
    msg: str = ""
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == KIE_SUCCESS_CODE


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    task_id: Optional[str] = Field(None, alias="taskId")

    def normalized_status(self) -> TaskStatus | None:
        raise NotImplementedError

    def result_urls(self) -> list[str]:
        raise NotImplementedError

    def error_message(self) -> str | None:
        return None


# ---------------------------------------------------------------------------
# Playground (nano-banana family)
# ---------------------------------------------------------------------------

_PLAYGROUND_STATES: dict[str, TaskStatus] = {
    "waiting": TaskStatus.PENDING,
    "queuing": TaskStatus.PENDING,
    "generating": TaskStatus.PROCESSING,
    "success": TaskStatus.COMPLETED,
    "fail": TaskStatus.FAILED,
}


class PlaygroundRecord(_Record):
    """``/playground/recordInfo`` data object."""

    family: Literal["playground"] = "playground"
    model: Optional[str] = None
    state: Optional[str] = None
    result_json: Optional[Union[str, dict[str, Any]]] = Field(None, alias="resultJson")
    fail_code: Optional[Union[int, str]] = Field(None, alias="failCode")
    fail_msg: Optional[str] = Field(None, alias="failMsg")

    def normalized_status(self) -> TaskStatus | None:
        return _PLAYGROUND_STATES.get((self.state or "").lower())

    def result_urls(self) -> list[str]:
        # resultJson usually arrives as a JSON-encoded string.
        if not self.result_json:
            return []
        parsed: Any = self.result_json
        if isinstance(parsed, str):
            try:
                parsed = json.loads(parsed)
            except ValueError:
                logger.warning("Unparseable resultJson for task %s", self.task_id)
                return []
        urls = parsed.get("resultUrls") if isinstance(parsed, dict) else None
        return [u for u in urls or [] if isinstance(u, str)]

    def error_message(self) -> str | None:
        return self.fail_msg or None


# ---------------------------------------------------------------------------
# successFlag families (veo and the rest)
# ---------------------------------------------------------------------------

def _flag_status(flag: int | None) -> TaskStatus | None:
    if flag is None:
        return None
    if flag == 0:
        return TaskStatus.PROCESSING
    if flag == 1:
        return TaskStatus.COMPLETED
    if flag in (2, 3):
        return TaskStatus.FAILED
    return None


def _collect_urls(*sources: Any) -> list[str]:
    """Pull result URLs out of the handful of layouts providers use."""
    urls: list[str] = []
    for source in sources:
        if isinstance(source, str):
            try:
                source = json.loads(source)
            except ValueError:
                continue
        if not isinstance(source, dict):
            continue
        for key in (
            "resultUrls", "result_urls", "resultImageUrl", "resultUrl", "videoUrl", "imageUrl",
        ):
            value = source.get(key)
            if isinstance(value, str):
                urls.append(value)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, str):
                        urls.append(item)
                    elif isinstance(item, dict) and isinstance(item.get("resultUrl"), str):
                        urls.append(item["resultUrl"])
    return list(dict.fromkeys(urls))


class VeoRecord(_Record):
    """``/veo/record-info`` data object."""

    family: Literal["veo"] = "veo"
    success_flag: Optional[int] = Field(None, alias="successFlag")
    response: Optional[dict[str, Any]] = None
    error_code: Optional[Union[int, str]] = Field(None, alias="errorCode")
    error_msg: Optional[str] = Field(None, alias="errorMessage")
    fallback_flag: Optional[bool] = Field(None, alias="fallbackFlag")

    def normalized_status(self) -> TaskStatus | None:
        return _flag_status(self.success_flag)

    def result_urls(self) -> list[str]:
        return _collect_urls(self.response)

    def error_message(self) -> str | None:
        return self.error_msg or None


class FlagRecord(_Record):
    """Generic ``record-info`` data object keyed on ``successFlag``."""

    family: Literal["success_flag"] = "success_flag"
    success_flag: Optional[int] = Field(None, alias="successFlag")
    status: Optional[str] = None
    response: Optional[dict[str, Any]] = None
    result_info_json: Optional[Union[dict[str, Any], str]] = Field(None, alias="resultInfoJson")
    video_info: Optional[dict[str, Any]] = Field(None, alias="videoInfo")
    error_code: Optional[Union[int, str]] = Field(None, alias="errorCode")
    error_msg: Optional[str] = Field(None, alias="errorMessage")

    def normalized_status(self) -> TaskStatus | None:
        return _flag_status(self.success_flag)

    def result_urls(self) -> list[str]:
        return _collect_urls(self.response, self.result_info_json, self.video_info)

    def error_message(self) -> str | None:
        return self.error_msg or None


StatusRecord = Union[PlaygroundRecord, VeoRecord, FlagRecord]

_RECORD_MODELS: dict[str, type[_Record]] = {
    "playground": PlaygroundRecord,
    "veo": VeoRecord,
    "success_flag": FlagRecord,
}


def parse_status_record(hint: str, data: Any) -> StatusRecord | None:
    """Interpret a status ``data`` object according to ``hint``.

    Returns ``None`` when the upstream has nothing for this task (null or empty
    data) or when the object does not fit the expected family.
    """
    if not isinstance(data, dict) or not data:
        return None
    model = _RECORD_MODELS.get(hint, FlagRecord)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("Status payload does not match %s shape: %s", hint, e.error_count())
        return None
