from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """kie-mediabridge settings.

    Loaded from environment variables or .env file once at process start and
    treated as immutable afterwards.
    """

    # --- Application ---
    APP_NAME: str = "kie-mediabridge"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 8765

    # --- Kie.ai upstream ---
    KIE_AI_API_KEY: str = ""
    KIE_AI_BASE_URL: str = "https://api.kie.ai/api/v1"
    KIE_AI_TIMEOUT: float = 60.0  # seconds, per outbound call

    # --- Task storage (SQLite) ---
    KIE_AI_DB_PATH: str = "./tasks.db"

    # --- Task listing ---
    LIST_TASKS_DEFAULT_LIMIT: int = 20
    LIST_TASKS_MAX_LIMIT: int = 100

    # --- Status reconciliation ---
    STRICT_STATUS_TRANSITIONS: bool = False

    # --- Webhook ---
    # When set, callbacks must carry ?token=<secret> (put it in callBackUrl).
    KIE_AI_CALLBACK_SECRET: str = ""

    @property
    def DATABASE_URL(self) -> str:
        """Async SQLite connection string using the aiosqlite driver."""
        return f"sqlite+aiosqlite:///{Path(self.KIE_AI_DB_PATH).expanduser()}"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()


def mask_key(key: str) -> str:
    """Mask an API key for safe logging: show first 8 and last 4 chars."""
    if len(key) <= 16:
        return "***"
    return f"{key[:8]}...{key[-4:]}"
