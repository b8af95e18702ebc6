"""Tool catalogue — the immutable list of tools exposed to RPC callers.

Each tool is a ``ToolDescriptor`` value object pairing a name, a pydantic
arguments model and an async invoker. ``build_tool_catalog`` assembles the
full Kie.ai catalogue once at startup; the dispatcher only ever reads it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from mediabridge.schemas.task import TaskCreate
from mediabridge.schemas.tools import (
    FluxKontextEditArgs,
    FluxKontextGenerateArgs,
    GenerationArguments,
    Gpt4oImageArgs,
    ListTasksArgs,
    LumaVideoArgs,
    MidjourneyImageArgs,
    NanoBananaEditArgs,
    NanoBananaGenerateArgs,
    RunwayAlephVideoArgs,
    TaskStatusArgs,
    Veo1080pArgs,
    Veo3GenerateArgs,
)
from mediabridge.services.gateway import KieGateway
from mediabridge.services.task_resolver import TaskResolver
from mediabridge.services.task_store import TaskStore

logger = logging.getLogger(__name__)

Invoker = Callable[[Any], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class ToolDescriptor:
    """One callable tool: name, argument schema and invoker."""
    name: str
    description: str
    arguments: type[BaseModel]
    invoke: Invoker

    def input_schema(self) -> dict[str, Any]:
        return self.arguments.model_json_schema(by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class ToolCatalogBuilder:
    """Collects tool registrations and freezes them into a tuple."""

    def __init__(self) -> None:
        self._tools: list[ToolDescriptor] = []

    def add(
        self,
        name: str,
        description: str,
        arguments: type[BaseModel],
        invoke: Invoker,
    ) -> ToolCatalogBuilder:
        if any(tool.name == name for tool in self._tools):
            raise ValueError(f"Tool {name!r} registered twice")
        self._tools.append(ToolDescriptor(name, description, arguments, invoke))
        return self

    def build(self) -> tuple[ToolDescriptor, ...]:
        return tuple(self._tools)


# ---------------------------------------------------------------------------
# Invokers
# ---------------------------------------------------------------------------

class MediaTools:
    """Tool implementations over the store, gateway and resolver."""

    def __init__(self, store: TaskStore, gateway: KieGateway, resolver: TaskResolver) -> None:
        self.store = store
        self.gateway = gateway
        self.resolver = resolver

    def generation(self, message: str, note: str | None = None) -> Invoker:
        """Build an invoker that submits a job and records the returned task."""

        async def invoke(args: GenerationArguments) -> dict[str, Any]:
            provider_tag = args.provider_tag.value
            result = await self.gateway.submit(provider_tag, args.to_payload())

            if result.task_id:
                await self.store.put(TaskCreate(
                    task_id=result.task_id,
                    provider_tag=provider_tag,
                    result_url=result.image_url,
                ))
            else:
                logger.warning("Submission to %s returned no task id", provider_tag)

            envelope: dict[str, Any] = {
                "success": True,
                "task_id": result.task_id,
                "response": result.raw,
                "message": message,
            }
            if note:
                envelope["note"] = note
            return envelope

        return invoke

    async def get_task_status(self, args: TaskStatusArgs) -> dict[str, Any]:
        resolved = await self.resolver.resolve(args.task_id)
        upstream = resolved.upstream
        return {
            "success": True,
            "task_id": resolved.task_id,
            "local_task": (
                resolved.local_task.model_dump(mode="json") if resolved.local_task else None
            ),
            "api_response": upstream.raw if upstream else None,
            "upstream": upstream.to_dict() if upstream else None,
            "attempts": [attempt.to_dict() for attempt in resolved.attempts],
            "message": resolved.message,
        }

    async def list_tasks(self, args: ListTasksArgs) -> dict[str, Any]:
        tasks = await self.store.list(args.limit, args.status)
        return {
            "success": True,
            "tasks": [task.model_dump(mode="json") for task in tasks],
            "count": len(tasks),
            "limit": self.store.clamp_limit(args.limit),
            "message": f"Retrieved {len(tasks)} tasks",
        }

    async def get_veo3_1080p_video(self, args: Veo1080pArgs) -> dict[str, Any]:
        result = await self.gateway.fetch_upgrade(args.task_id, args.index)
        return {
            "success": True,
            "task_id": result.task_id,
            "index": result.index,
            "result_url": result.result_url,
            "response": result.raw,
            "message": "Retrieved 1080p video URL",
            "note": "Not available for videos generated with fallback mode",
        }


_VIDEO_NOTE = "Use get_task_status to check progress"


def build_tool_catalog(
    store: TaskStore,
    gateway: KieGateway,
    resolver: TaskResolver,
) -> tuple[ToolDescriptor, ...]:
    """Assemble the Kie.ai tool catalogue."""
    tools = MediaTools(store, gateway, resolver)

    catalog = (
        ToolCatalogBuilder()
        .add(
            "generate_nano_banana",
            "Generate images using Google's Gemini 2.5 Flash Image Preview (Nano Banana)",
            NanoBananaGenerateArgs,
            tools.generation("Nano Banana image generation initiated"),
        )
        .add(
            "edit_nano_banana",
            "Edit images using natural language prompts with Nano Banana Edit",
            NanoBananaEditArgs,
            tools.generation("Nano Banana image editing initiated"),
        )
        .add(
            "generate_gpt4o_image",
            "Generate images using the GPT-4o image generation API",
            Gpt4oImageArgs,
            tools.generation("GPT-4o image generation initiated"),
        )
        .add(
            "generate_flux_image",
            "Generate images using Flux Kontext models",
            FluxKontextGenerateArgs,
            tools.generation("Flux Kontext image generation initiated"),
        )
        .add(
            "edit_flux_image",
            "Edit images using Flux Kontext models",
            FluxKontextEditArgs,
            tools.generation("Flux Kontext image editing initiated"),
        )
        .add(
            "generate_midjourney_image",
            "Generate images using the Midjourney API",
            MidjourneyImageArgs,
            tools.generation("Midjourney image generation initiated"),
        )
        .add(
            "generate_veo3_video",
            "Generate professional-quality videos using Google's Veo3 API",
            Veo3GenerateArgs,
            tools.generation("Veo3 video generation task created successfully", _VIDEO_NOTE),
        )
        .add(
            "generate_runway_aleph_video",
            "Generate cinematic videos using Runway Aleph via Kie.ai",
            RunwayAlephVideoArgs,
            tools.generation("Runway Aleph video generation task created successfully", _VIDEO_NOTE),
        )
        .add(
            "generate_luma_video",
            "Generate high-quality videos using Luma via Kie.ai",
            LumaVideoArgs,
            tools.generation("Luma video generation task created successfully", _VIDEO_NOTE),
        )
        .add(
            "get_task_status",
            "Get the status of a generation task",
            TaskStatusArgs,
            tools.get_task_status,
        )
        .add(
            "list_tasks",
            "List recent tasks with their status",
            ListTasksArgs,
            tools.list_tasks,
        )
        .add(
            "get_veo3_1080p_video",
            "Get 1080P high-definition version of a Veo3 video (not available for fallback mode videos)",
            Veo1080pArgs,
            tools.get_veo3_1080p_video,
        )
        .build()
    )
    logger.info("Tool catalogue built: %d tools", len(catalog))
    return catalog
