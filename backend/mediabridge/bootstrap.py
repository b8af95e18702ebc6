from __future__ import annotations
"""Service wiring — builds the store, registry, gateway, resolver and tools."""

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from mediabridge.config import Settings
from mediabridge.database import build_engine, build_session_factory, close_db, init_db
from mediabridge.services.dispatcher import ToolDispatcher
from mediabridge.services.endpoint_registry import EndpointRegistry, build_endpoint_registry
from mediabridge.services.gateway import KieGateway
from mediabridge.services.task_resolver import TaskResolver
from mediabridge.services.task_store import TaskStore
from mediabridge.services.tool_catalog import build_tool_catalog

logger = logging.getLogger(__name__)


@dataclass
class Bridge:
    """Everything one running instance needs, built once at startup."""
    settings: Settings
    engine: AsyncEngine
    store: TaskStore
    registry: EndpointRegistry
    gateway: KieGateway
    resolver: TaskResolver
    dispatcher: ToolDispatcher

    async def aclose(self) -> None:
        await self.gateway.aclose()
        await close_db(self.engine)


async def start_bridge(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Bridge:
    """Build and initialize all services.

    Args:
        settings: Process configuration.
        transport: Optional httpx transport for the upstream client (tests
            pass a ``MockTransport``).

    Raises:
        RuntimeError: If no Kie.ai API key is configured.
    """
    if not settings.KIE_AI_API_KEY:
        raise RuntimeError("KIE_AI_API_KEY environment variable is required")

    engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    await init_db(engine)

    store = TaskStore(
        build_session_factory(engine),
        default_limit=settings.LIST_TASKS_DEFAULT_LIMIT,
        max_limit=settings.LIST_TASKS_MAX_LIMIT,
    )
    registry = build_endpoint_registry()
    gateway = KieGateway.from_settings(settings, transport=transport)
    resolver = TaskResolver(
        store, registry, gateway, strict_transitions=settings.STRICT_STATUS_TRANSITIONS,
    )
    dispatcher = ToolDispatcher(build_tool_catalog(store, gateway, resolver))

    logger.info(
        "Bridge ready: db=%s tools=%d strict_transitions=%s",
        settings.KIE_AI_DB_PATH, len(dispatcher.tool_names), settings.STRICT_STATUS_TRANSITIONS,
    )
    return Bridge(settings, engine, store, registry, gateway, resolver, dispatcher)
