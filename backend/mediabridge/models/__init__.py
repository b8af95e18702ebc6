"""ORM model package — registers all models with Base.metadata."""

from mediabridge.models.task import (
    VALID_TRANSITIONS,
    ProviderTag,
    Task,
    TaskStatus,
    can_transition,
)

__all__ = [
    "ProviderTag",
    "Task",
    "TaskStatus",
    "VALID_TRANSITIONS",
    "can_transition",
]
