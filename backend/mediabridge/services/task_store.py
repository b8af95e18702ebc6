"""Durable task store backed by SQLite.

Every operation opens its own session and hits the database; there is no
read cache. Writes are targeted column updates so that concurrent status
checks on the same task cannot clobber unrelated fields.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediabridge.models.task import Task, TaskStatus
from mediabridge.schemas.task import TaskCreate, TaskRead, TaskUpdate

logger = logging.getLogger(__name__)


class TaskStoreError(Exception):
    """Base class for task store failures."""


class DuplicateTaskError(TaskStoreError):
    """A record with this task_id already exists."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} already exists")
        self.task_id = task_id


class TaskNotFoundError(TaskStoreError):
    """No record with this task_id exists."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskStore:
    """Insert, look up, update and list task records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        default_limit: int = 20,
        max_limit: int = 100,
    ) -> None:
        self._session_factory = session_factory
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def put(self, data: TaskCreate) -> TaskRead:
        """Insert a new record. Never overwrites an existing one."""
        now = datetime.now(timezone.utc)
        task = Task(
            task_id=data.task_id,
            provider_tag=data.provider_tag,
            status=data.status.value,
            result_url=data.result_url,
            error_message=data.error_message,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(task)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateTaskError(data.task_id) from e
            record = TaskRead.model_validate(task)

        logger.info(
            "Task stored: %s (provider=%s, status=%s)",
            record.task_id, record.provider_tag, record.status,
        )
        return record

    async def get(self, task_id: str) -> TaskRead | None:
        async with self._session_factory() as session:
            result = await session.execute(select(Task).where(Task.task_id == task_id))
            task = result.scalar_one_or_none()
            return TaskRead.model_validate(task) if task is not None else None

    async def require(self, task_id: str) -> TaskRead:
        record = await self.get(task_id)
        if record is None:
            raise TaskNotFoundError(task_id)
        return record

    async def update(self, task_id: str, changes: TaskUpdate) -> TaskRead:
        """Apply only the supplied fields and refresh ``updated_at``.

        An update with nothing to write leaves the record untouched.

        Raises:
            TaskNotFoundError: If no record has this task_id.
        """
        values: dict[str, object] = dict(changes.changes())
        if not values:
            return await self.require(task_id)

        values["updated_at"] = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            result = await session.execute(
                update(Task).where(Task.task_id == task_id).values(**values)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise TaskNotFoundError(task_id)
            await session.commit()

            refreshed = await session.execute(select(Task).where(Task.task_id == task_id))
            record = TaskRead.model_validate(refreshed.scalar_one())

        logger.debug("Task %s updated: %s", task_id, sorted(values))
        return record

    def clamp_limit(self, limit: int | None) -> int:
        """Bound a caller-supplied limit to ``[1, max_limit]``."""
        if limit is None:
            limit = self.default_limit
        return max(1, min(int(limit), self.max_limit))

    async def list(
        self,
        limit: int | None = None,
        status: TaskStatus | str | None = None,
    ) -> list[TaskRead]:
        """List records newest first, optionally filtered by status."""
        query = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
        if status is not None:
            status_value = status.value if isinstance(status, TaskStatus) else status
            query = query.where(Task.status == status_value)
        query = query.limit(self.clamp_limit(limit))

        async with self._session_factory() as session:
            result = await session.execute(query)
            return [TaskRead.model_validate(task) for task in result.scalars().all()]
