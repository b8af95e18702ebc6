"""Utilities to run Alembic migrations programmatically."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


def alembic_config(database_url: str) -> Config:
    """Build an Alembic config pointing at ``database_url`` (async driver URL)."""
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def upgrade_head(database_url: str) -> None:
    """Apply Alembic migrations up to head.

    Runs its own event loop, so call it outside of any running loop.
    """
    command.upgrade(alembic_config(database_url), "head")


def main() -> None:
    """Console entry point: migrate the configured task database."""
    from mediabridge.config import get_settings

    upgrade_head(get_settings().DATABASE_URL)
