from __future__ import annotations
"""Task ORM model — the local record of one upstream generation job."""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mediabridge.database import Base


class TaskStatus(str, enum.Enum):
    """Task lifecycle statuses."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Explicit valid transitions: status -> set of reachable statuses.
# Only consulted when strict reconciliation is switched on; the store itself
# accepts any status at any time.
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.PROCESSING, TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.PROCESSING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),  # terminal state
    TaskStatus.FAILED: set(),  # terminal state
}


def can_transition(current: str, target: str) -> bool:
    """Check whether ``current`` may move to ``target`` under the strict rules.

    Re-asserting the current status is always allowed. Unknown statuses never
    transition.
    """
    try:
        current_status = TaskStatus(current)
        target_status = TaskStatus(target)
    except ValueError:
        return False
    if current_status == target_status:
        return True
    return target_status in VALID_TRANSITIONS[current_status]


class ProviderTag(str, enum.Enum):
    """Upstream generation family that produced a task."""

    NANO_BANANA = "nano-banana"
    NANO_BANANA_EDIT = "nano-banana-edit"
    VEO3 = "veo3"
    GPT4O_IMAGE = "gpt4o-image"
    FLUX_KONTEXT_GENERATE = "flux-kontext-generate"
    FLUX_KONTEXT_EDIT = "flux-kontext-edit"
    MIDJOURNEY_IMAGE = "midjourney-image"
    RUNWAY_ALEPH_VIDEO = "runway-aleph-video"
    LUMA_VIDEO = "luma-video"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(Base):
    """A submitted generation task, addressed by its provider-assigned id."""

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    # Stored as plain text so records written under a since-retired tag
    # still load.
    provider_tag: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskStatus.PENDING.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    result_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
