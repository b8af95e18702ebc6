from __future__ import annotations
"""Pydantic v2 schemas for the Task model."""

from datetime import datetime

from pydantic import BaseModel, Field

from mediabridge.models.task import TaskStatus


class TaskCreate(BaseModel):
    """Schema for inserting a freshly submitted task."""

    task_id: str = Field(..., min_length=1, max_length=255)
    provider_tag: str = Field(..., min_length=1, max_length=64)
    status: TaskStatus = TaskStatus.PENDING
    result_url: str | None = None
    error_message: str | None = None


class TaskUpdate(BaseModel):
    """Partial update: only fields that are set (and non-null) are written.

    ``provider_tag`` is immutable and ``result_url`` cannot be cleared.
    """

    status: TaskStatus | None = None
    result_url: str | None = None
    error_message: str | None = None

    def changes(self) -> dict[str, str]:
        """Return the column values this update writes."""
        data = self.model_dump(exclude_none=True, mode="json")
        return {key: value for key, value in data.items() if value != ""}


class TaskRead(BaseModel):
    """Schema for reading a task record."""

    task_id: str
    provider_tag: str
    status: str
    created_at: datetime
    updated_at: datetime
    result_url: str | None = None
    error_message: str | None = None

    model_config = {"from_attributes": True, "frozen": True}
