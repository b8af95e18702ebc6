from __future__ import annotations

import pytest

from mediabridge.database import build_engine, build_session_factory, close_db, init_db
from mediabridge.models.task import ProviderTag, TaskStatus
from mediabridge.schemas.task import TaskCreate, TaskUpdate
from mediabridge.services.task_store import DuplicateTaskError, TaskNotFoundError, TaskStore

pytestmark = pytest.mark.anyio


def _create(task_id: str, tag: ProviderTag = ProviderTag.VEO3, **kwargs) -> TaskCreate:
    return TaskCreate(task_id=task_id, provider_tag=tag.value, **kwargs)


async def test_put_then_get_returns_pending_record(store):
    created = await store.put(_create("veo_1"))

    assert created.status == TaskStatus.PENDING.value
    assert created.result_url is None

    fetched = await store.get("veo_1")
    assert fetched is not None
    assert fetched.task_id == "veo_1"
    assert fetched.provider_tag == "veo3"
    assert fetched.status == "pending"


async def test_get_unknown_task_returns_none(store):
    assert await store.get("missing") is None
    with pytest.raises(TaskNotFoundError):
        await store.require("missing")


async def test_put_never_overwrites_existing_record(store):
    await store.put(_create("dup", result_url="https://cdn.test/first.png"))

    with pytest.raises(DuplicateTaskError) as exc:
        await store.put(_create("dup", ProviderTag.NANO_BANANA))
    assert exc.value.task_id == "dup"

    record = await store.get("dup")
    assert record.provider_tag == "veo3"
    assert record.result_url == "https://cdn.test/first.png"


async def test_update_writes_only_supplied_fields(store):
    await store.put(_create("t1"))

    updated = await store.update("t1", TaskUpdate(status=TaskStatus.PROCESSING))
    assert updated.status == "processing"
    assert updated.result_url is None

    updated = await store.update("t1", TaskUpdate(result_url="https://cdn.test/v.mp4"))
    assert updated.status == "processing"
    assert updated.result_url == "https://cdn.test/v.mp4"
    assert updated.provider_tag == "veo3"


async def test_update_is_idempotent(store):
    await store.put(_create("t1"))
    change = TaskUpdate(status=TaskStatus.COMPLETED, result_url="https://cdn.test/a.mp4")

    first = await store.update("t1", change)
    second = await store.update("t1", change)

    assert (first.status, first.result_url) == (second.status, second.result_url)
    assert second.updated_at >= first.updated_at


async def test_empty_update_leaves_record_untouched(store):
    created = await store.put(_create("t1", result_url="https://cdn.test/keep.png"))

    unchanged = await store.update("t1", TaskUpdate(result_url=""))

    assert unchanged.result_url == "https://cdn.test/keep.png"
    assert unchanged.updated_at.replace(tzinfo=None) == created.updated_at.replace(tzinfo=None)


async def test_update_unknown_task_raises(store):
    with pytest.raises(TaskNotFoundError):
        await store.update("ghost", TaskUpdate(status=TaskStatus.FAILED))


async def test_list_is_newest_first(store):
    for task_id in ("a", "b", "c"):
        await store.put(_create(task_id))

    tasks = await store.list()
    assert [task.task_id for task in tasks] == ["c", "b", "a"]


async def test_list_filters_by_status(store):
    await store.put(_create("a"))
    await store.put(_create("b"))
    await store.update("b", TaskUpdate(status=TaskStatus.FAILED, error_message="content policy"))

    failed = await store.list(status=TaskStatus.FAILED)
    assert [task.task_id for task in failed] == ["b"]
    assert failed[0].error_message == "content policy"

    pending = await store.list(status="pending")
    assert [task.task_id for task in pending] == ["a"]


async def test_list_limit_is_clamped(engine):
    store = TaskStore(build_session_factory(engine), default_limit=2, max_limit=3)
    for i in range(5):
        await store.put(_create(f"t{i}"))

    assert len(await store.list()) == 2
    assert len(await store.list(limit=500)) == 3
    assert len(await store.list(limit=1)) == 1


def test_clamp_limit_bounds():
    store = TaskStore(session_factory=None)

    assert store.clamp_limit(None) == 20
    assert store.clamp_limit(500) == 100
    assert store.clamp_limit(0) == 1
    assert store.clamp_limit(-3) == 1
    assert store.clamp_limit(42) == 42


async def test_records_survive_engine_restart(settings):
    engine = build_engine(settings.DATABASE_URL)
    await init_db(engine)
    await TaskStore(build_session_factory(engine)).put(_create("durable"))
    await close_db(engine)

    engine = build_engine(settings.DATABASE_URL)
    await init_db(engine)
    try:
        record = await TaskStore(build_session_factory(engine)).get("durable")
    finally:
        await close_db(engine)

    assert record is not None
    assert record.status == "pending"


def test_can_transition_rules():
    from mediabridge.models.task import can_transition

    assert can_transition("pending", "processing")
    assert can_transition("pending", "completed")
    assert can_transition("processing", "failed")
    assert can_transition("completed", "completed")
    assert not can_transition("completed", "processing")
    assert not can_transition("failed", "pending")
    assert not can_transition("pending", "archived")
