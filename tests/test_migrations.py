from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect, text

from mediabridge.database import build_engine, build_session_factory, close_db
from mediabridge.migrations import upgrade_head
from mediabridge.schemas.task import TaskCreate, TaskUpdate
from mediabridge.models.task import TaskStatus
from mediabridge.services.task_store import TaskStore


@pytest.fixture
def migrated_db(tmp_path) -> Path:
    db_path = tmp_path / "migrated.db"
    upgrade_head(f"sqlite+aiosqlite:///{db_path}")
    return db_path


def test_alembic_schema_is_initialized_to_head(migrated_db):
    engine = create_engine(f"sqlite:///{migrated_db}")
    try:
        with engine.connect() as conn:
            version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar_one()
        inspector = inspect(engine)
        tables = inspector.get_table_names()
        columns = {column["name"] for column in inspector.get_columns("tasks")}
        indexes = {index["name"]: index for index in inspector.get_indexes("tasks")}
    finally:
        engine.dispose()

    assert version == "0001"
    assert "tasks" in tables
    assert columns == {
        "id", "task_id", "provider_tag", "status", "created_at", "updated_at", "result_url", "error_message",
    }
    assert indexes["ix_tasks_task_id"]["unique"]
    assert "ix_tasks_status" in indexes
    assert "ix_tasks_created_at" in indexes


@pytest.mark.anyio
async def test_store_runs_against_migrated_schema(migrated_db):
    engine = build_engine(f"sqlite+aiosqlite:///{migrated_db}")
    store = TaskStore(build_session_factory(engine))
    try:
        await store.put(TaskCreate(task_id="m1", provider_tag="veo3"))
        updated = await store.update("m1", TaskUpdate(status=TaskStatus.COMPLETED))
    finally:
        await close_db(engine)

    assert updated.status == "completed"
