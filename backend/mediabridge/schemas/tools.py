from __future__ import annotations
"""Pydantic v2 schemas for tool arguments.

Field aliases keep the upstream's wire names (``imageUrls``, ``callBackUrl``,
...) so callers can pass arguments straight through; ``to_payload`` dumps the
validated request in that same form.
"""

from typing import Annotated, Any, ClassVar, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    WithJsonSchema,
)

from mediabridge.models.task import ProviderTag, TaskStatus

ImageSize = Literal[
    "1:1", "9:16", "16:9", "3:4", "4:3", "3:2", "2:3", "5:4", "4:5", "21:9", "auto",
]
OutputFormat = Literal["png", "jpeg"]
FluxKontextModel = Literal["flux-kontext-pro", "flux-kontext-max"]

_HTTP_URL = TypeAdapter(HttpUrl)


def _check_http_url(value: str) -> str:
    """Validate as an http(s) URL but hand back the caller's exact string.

    ``HttpUrl`` normalizes (trailing slash on bare hosts, re-encoded paths),
    which breaks signed CDN links once forwarded upstream.
    """
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http(s) URL")
    return value


HttpUrlStr = Annotated[
    str,
    AfterValidator(_check_http_url),
    WithJsonSchema({"type": "string", "format": "uri"}),
]


class ToolArguments(BaseModel):
    """Base for all tool argument models."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GenerationArguments(ToolArguments):
    """Arguments for a tool that submits a generation job."""

    provider_tag: ClassVar[ProviderTag]

    def to_payload(self) -> dict[str, Any]:
        """Request body for the provider's submission endpoint."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# Image generation
# ---------------------------------------------------------------------------

class NanoBananaGenerateArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.NANO_BANANA
    playground_model: ClassVar[str] = "google/nano-banana"

    prompt: str = Field(..., min_length=1, max_length=1000, description="Text prompt for image generation")
    image_size: Optional[ImageSize] = Field(None, description="Desired aspect ratio for the output image")
    output_format: Optional[OutputFormat] = Field(None, description="Output image format")

    def to_payload(self) -> dict[str, Any]:
        # Nano Banana goes through the playground task API.
        return {"model": self.playground_model, "input": super().to_payload()}


class NanoBananaEditArgs(NanoBananaGenerateArgs):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.NANO_BANANA_EDIT
    playground_model: ClassVar[str] = "google/nano-banana-edit"

    prompt: str = Field(..., min_length=1, max_length=1000, description="Text prompt for image editing")
    image_urls: list[HttpUrlStr] = Field(
        ..., min_length=1, max_length=5, description="URLs of input images for editing (max 5)",
    )


class Gpt4oImageArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.GPT4O_IMAGE

    prompt: str = Field(..., min_length=1, max_length=2000, description="Text prompt for GPT-4o image generation")
    image_urls: Optional[list[HttpUrlStr]] = Field(
        None, min_length=1, max_length=5, description="Optional reference images (max 5)",
    )
    size: Optional[ImageSize] = Field(None, description="Image aspect ratio/size")
    output_format: Optional[OutputFormat] = Field(None, description="Output image format")
    call_back_url: Optional[HttpUrlStr] = Field(
        None, alias="callBackUrl", description="Webhook URL to receive the generated image",
    )


class FluxKontextGenerateArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.FLUX_KONTEXT_GENERATE

    prompt: str = Field(..., min_length=1, max_length=2000, description="Prompt describing the desired Flux Kontext image")
    image_urls: Optional[list[HttpUrlStr]] = Field(
        None, min_length=1, max_length=5, description="Optional reference or init images (max 5)",
    )
    aspect_ratio: Optional[ImageSize] = Field(None, alias="aspectRatio", description="Image aspect ratio")
    model: FluxKontextModel = Field("flux-kontext-pro", description="Flux Kontext model variant")
    output_format: Optional[OutputFormat] = Field(None, description="Output image format")
    call_back_url: Optional[HttpUrlStr] = Field(
        None, alias="callBackUrl", description="Webhook URL for task completion notifications",
    )


class FluxKontextEditArgs(FluxKontextGenerateArgs):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.FLUX_KONTEXT_EDIT

    prompt: str = Field(..., min_length=1, max_length=2000, description="Instructions for editing the image")
    image_urls: list[HttpUrlStr] = Field(
        ..., min_length=1, max_length=5, description="Source images to edit (1-5)",
    )


class MidjourneyImageArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.MIDJOURNEY_IMAGE

    prompt: str = Field(..., min_length=1, max_length=2000, description="Prompt describing the desired Midjourney image")
    image_urls: Optional[list[HttpUrlStr]] = Field(
        None, min_length=1, max_length=4, description="Optional reference images (max 4)",
    )
    aspect_ratio: Optional[ImageSize] = Field(None, alias="aspectRatio", description="Image aspect ratio")
    output_format: Optional[OutputFormat] = Field(None, description="Output image format")
    call_back_url: Optional[HttpUrlStr] = Field(
        None, alias="callBackUrl", description="Webhook URL to receive finished images",
    )


# ---------------------------------------------------------------------------
# Video generation
# ---------------------------------------------------------------------------

class Veo3GenerateArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.VEO3

    prompt: str = Field(..., min_length=1, max_length=2000, description="Text prompt describing desired video content")
    image_urls: Optional[list[HttpUrlStr]] = Field(
        None, alias="imageUrls", max_length=1, description="Image URLs for image-to-video generation (max 1)",
    )
    model: Literal["veo3", "veo3_fast"] = Field(
        "veo3", description="Model type: veo3 (quality) or veo3_fast (cost-efficient)",
    )
    watermark: Optional[str] = Field(None, max_length=100, description="Watermark text to add to video")
    aspect_ratio: Literal["16:9", "9:16"] = Field("16:9", alias="aspectRatio", description="Video aspect ratio")
    seeds: Optional[int] = Field(None, ge=10000, le=99999, description="Random seed for consistent results")
    call_back_url: Optional[HttpUrlStr] = Field(
        None, alias="callBackUrl", description="Webhook URL for task completion notifications",
    )
    enable_fallback: bool = Field(
        False, alias="enableFallback", description="Enable fallback mechanism for content policy failures",
    )


class RunwayAlephVideoArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.RUNWAY_ALEPH_VIDEO

    prompt: str = Field(..., min_length=1, max_length=2000, description="Text description for the Aleph video generation")
    image_urls: Optional[list[HttpUrlStr]] = Field(
        None, alias="imageUrls", max_length=4, description="Optional reference images (max 4)",
    )
    duration: Optional[int] = Field(
        None, ge=1, le=120, description="Desired duration of the generated video in seconds",
    )
    aspect_ratio: Optional[ImageSize] = Field(
        None, alias="aspectRatio", description="Aspect ratio for the generated video",
    )
    call_back_url: Optional[HttpUrlStr] = Field(
        None, alias="callBackUrl", description="Webhook URL for task completion notifications",
    )


class LumaVideoArgs(GenerationArguments):
    provider_tag: ClassVar[ProviderTag] = ProviderTag.LUMA_VIDEO

    prompt: str = Field(..., min_length=1, max_length=2000, description="Prompt describing the desired Luma video")
    image_urls: Optional[list[HttpUrlStr]] = Field(
        None, alias="imageUrls", max_length=4, description="Optional reference images (max 4)",
    )
    duration: Optional[int] = Field(
        None, ge=1, le=120, description="Desired duration of the generated video in seconds",
    )
    call_back_url: Optional[HttpUrlStr] = Field(
        None, alias="callBackUrl", description="Webhook URL for task completion notifications",
    )


# ---------------------------------------------------------------------------
# Task tools
# ---------------------------------------------------------------------------

class TaskStatusArgs(ToolArguments):
    task_id: str = Field(..., min_length=1, description="Task ID to check status for")


class ListTasksArgs(ToolArguments):
    # Oversized limits are clamped by the store, not rejected.
    limit: Optional[int] = Field(None, ge=1, description="Maximum number of tasks to return (capped at 100)")
    status: Optional[TaskStatus] = Field(None, description="Filter by status")


class Veo1080pArgs(ToolArguments):
    task_id: str = Field(..., min_length=1, description="Veo3 task ID to get 1080p video for")
    index: Optional[int] = Field(
        None, ge=0, description="Video index (optional, for multiple video results)",
    )
