"""Task status resolution — local record + sequential upstream probing.

Resolution order for one task id:

1. Look the task up in the local store; its ``provider_tag`` is the hint.
2. Ask the endpoint registry for the candidate plan for that hint.
3. Probe candidates one at a time. The first completed HTTP exchange wins,
   even if the upstream says it has never heard of the task. Transport
   failures (including timeouts) move on to the next candidate.
4. If every candidate fails, return the local record alone, or raise
   ``TaskResolutionError`` when there is no local record either.

Candidates are never probed in parallel: several routes are unverified and
extra calls can hit provider rate limits or billing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from mediabridge.models.task import TaskStatus, can_transition
from mediabridge.schemas.task import TaskRead, TaskUpdate
from mediabridge.services.endpoint_registry import CandidatePlan, EndpointRegistry
from mediabridge.services.gateway import KieGateway, UpstreamStatus, UpstreamTransportError
from mediabridge.services.task_store import TaskNotFoundError, TaskStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeAttempt:
    """Outcome of probing one candidate endpoint."""
    endpoint: str
    succeeded: bool
    error: str | None = None
    timed_out: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "succeeded": self.succeeded,
            "error": self.error,
            "timed_out": self.timed_out,
        }


@dataclass(frozen=True)
class ResolvedTask:
    """Merged view of the local record and the upstream answer."""
    task_id: str
    local_task: TaskRead | None
    upstream: UpstreamStatus | None
    attempts: tuple[ProbeAttempt, ...] = field(default_factory=tuple)

    @property
    def found_locally(self) -> bool:
        return self.local_task is not None

    @property
    def message(self) -> str:
        if self.local_task is None:
            return "Task not found in local database"
        if self.upstream is None:
            return "Task found locally; upstream status unavailable"
        return "Task found"


class TaskResolutionError(Exception):
    """No local record and no upstream endpoint could be reached."""

    def __init__(self, task_id: str, attempts: tuple[ProbeAttempt, ...]):
        tried = ", ".join(a.endpoint for a in attempts) or "none"
        super().__init__(f"Could not resolve task {task_id}: all status endpoints failed ({tried})")
        self.task_id = task_id
        self.attempts = attempts


class TaskResolver:
    """Resolve a task id to its freshest known state."""

    def __init__(
        self,
        store: TaskStore,
        registry: EndpointRegistry,
        gateway: KieGateway,
        *,
        strict_transitions: bool = False,
    ) -> None:
        self.store = store
        self.registry = registry
        self.gateway = gateway
        self.strict_transitions = strict_transitions

    async def resolve(self, task_id: str, known_provider_tag: str | None = None) -> ResolvedTask:
        """Resolve ``task_id`` against the store and the upstream.

        Raises:
            TaskResolutionError: If no local record exists and every upstream
                exchange failed.
        """
        local = await self.store.get(task_id)
        hint = local.provider_tag if local is not None else known_provider_tag
        plan = self.registry.candidates_for(hint)

        upstream, attempts = await self._probe(task_id, plan)

        if upstream is None:
            if local is None:
                raise TaskResolutionError(task_id, attempts)
            logger.warning("Task %s: every status endpoint failed, serving local record", task_id)
            return ResolvedTask(task_id, local, None, attempts)

        if local is not None:
            local = await self._reconcile(local, upstream)
        return ResolvedTask(task_id, local, upstream, attempts)

    async def _probe(
        self, task_id: str, plan: CandidatePlan,
    ) -> tuple[UpstreamStatus | None, tuple[ProbeAttempt, ...]]:
        attempts: list[ProbeAttempt] = []
        for candidate in plan:
            try:
                status = await self.gateway.check_status(candidate, task_id)
            except UpstreamTransportError as e:
                logger.info("Task %s: %s unavailable (%s), trying next", task_id, candidate.name, e)
                attempts.append(ProbeAttempt(candidate.name, False, str(e), e.timed_out))
                continue
            attempts.append(ProbeAttempt(candidate.name, True))
            return status, tuple(attempts)
        return None, tuple(attempts)

    async def _reconcile(self, local: TaskRead, upstream: UpstreamStatus) -> TaskRead:
        """Write what the upstream reported back into the local record."""
        record = upstream.record
        if record is None:
            return local
        status = record.normalized_status()
        if status is None:
            return local

        if self.strict_transitions and not can_transition(local.status, status.value):
            logger.warning(
                "Task %s: ignoring upstream transition %s -> %s",
                local.task_id, local.status, status.value,
            )
            return local

        changes = TaskUpdate()
        if status.value != local.status:
            changes.status = status
        urls = record.result_urls()
        if urls and not local.result_url:
            changes.result_url = urls[0]
        error = record.error_message()
        if status == TaskStatus.FAILED and error and error != local.error_message:
            changes.error_message = error

        if not changes.changes():
            return local
        try:
            return await self.store.update(local.task_id, changes)
        except TaskNotFoundError:
            # Removed out of band between lookup and write.
            logger.warning("Task %s disappeared during reconciliation", local.task_id)
            return local

    async def apply_callback(self, task_id: str, upstream: UpstreamStatus) -> TaskRead:
        """Reconcile a pushed (webhook) status for a known task.

        Raises:
            TaskNotFoundError: If the task is not in the local store.
        """
        local = await self.store.require(task_id)
        return await self._reconcile(local, upstream)
