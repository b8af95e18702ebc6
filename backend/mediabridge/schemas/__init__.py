"""Pydantic v2 schemas package."""

from mediabridge.schemas.task import TaskCreate, TaskRead, TaskUpdate
from mediabridge.schemas.upstream import (
    FlagRecord,
    KieEnvelope,
    PlaygroundRecord,
    StatusRecord,
    VeoRecord,
    parse_status_record,
)

__all__ = [
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    "KieEnvelope",
    "PlaygroundRecord",
    "VeoRecord",
    "FlagRecord",
    "StatusRecord",
    "parse_status_record",
]
