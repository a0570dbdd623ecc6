"""AI generation tools: text, image and video through Cosmic AI.

Image and video generation upload the result into the bucket's media library,
so both are write-gated.  Text generation only reads.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import Field

from cosmic_mcp.client import require_write_access
from cosmic_mcp.tools.base import (
    Maybe,
    ToolParams,
    ToolResult,
    ToolSpec,
    json_result,
    reports_errors,
)

logger = logging.getLogger(__name__)

MaxTokens = Annotated[int, Field(ge=1, le=100000)]
VideoDuration = Literal["4", "6", "8"]
VideoResolution = Literal["720p", "1080p"]


class GenerateTextParams(ToolParams):
    prompt: str = Field(description="The prompt to generate text from")
    model: Maybe[str] = Field(
        default=None, description='AI model to use (e.g., "gpt-4", "claude-3-opus")'
    )
    max_tokens: Maybe[MaxTokens] = Field(
        default=None, description="Maximum number of tokens to generate (1-100000)"
    )


class GenerateImageParams(ToolParams):
    prompt: str = Field(description="The prompt describing the image to generate")
    model: Maybe[str] = Field(default=None, description="AI model to use for image generation")
    folder: Maybe[str] = Field(default=None, description="Folder to save the generated image to")
    metadata: Maybe[dict[str, Any]] = Field(
        default=None, description="Additional metadata for the generated image"
    )
    alt_text: Maybe[str] = Field(default=None, description="Alt text for the generated image")


class GenerateVideoParams(ToolParams):
    prompt: str = Field(description="The prompt describing the video to generate")
    model: Maybe[str] = Field(default=None, description="AI model to use for video generation")
    duration: Maybe[VideoDuration] = Field(
        default=None, description="Video duration in seconds (4, 6, or 8)"
    )
    resolution: Maybe[VideoResolution] = Field(default=None, description="Video resolution")
    folder: Maybe[str] = Field(default=None, description="Folder to save the generated video to")
    metadata: Maybe[dict[str, Any]] = Field(
        default=None, description="Additional metadata for the generated video"
    )


def _present(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@reports_errors("generating text")
async def handle_generate_text(client: Any, params: GenerateTextParams) -> ToolResult:
    response = await client.ai.generate_text(
        _present({"prompt": params.prompt, "model": params.model, "max_tokens": params.max_tokens})
    )
    return json_result(
        {
            "message": "Text generated successfully",
            "text": response.get("text"),
            "model": response.get("model"),
            "usage": response.get("usage"),
        }
    )


@reports_errors("generating image")
async def handle_generate_image(client: Any, params: GenerateImageParams) -> ToolResult:
    require_write_access(client)

    response = await client.ai.generate_image(
        _present(
            {
                "prompt": params.prompt,
                "model": params.model,
                "folder": params.folder,
                "metadata": params.metadata,
                "alt_text": params.alt_text,
            }
        )
    )
    logger.info("Generated image %s", (response.get("media") or {}).get("id"))
    return json_result({"message": "Image generated successfully", "media": response.get("media")})


@reports_errors("generating video")
async def handle_generate_video(client: Any, params: GenerateVideoParams) -> ToolResult:
    require_write_access(client)

    duration = int(params.duration) if params.duration is not None else None
    response = await client.ai.generate_video(
        _present(
            {
                "prompt": params.prompt,
                "model": params.model,
                "duration": duration,
                "resolution": params.resolution,
                "folder": params.folder,
                "metadata": params.metadata,
            }
        )
    )
    logger.info("Generated video %s", (response.get("media") or {}).get("id"))
    return json_result(
        {
            "message": "Video generated successfully",
            "media": response.get("media"),
            "usage": response.get("usage"),
        }
    )


AI_TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="cosmic_ai_generate_text",
        description=(
            "Generate text content using Cosmic AI. Useful for creating content, "
            "descriptions, summaries, and more."
        ),
        params_model=GenerateTextParams,
        handler=handle_generate_text,
    ),
    ToolSpec(
        name="cosmic_ai_generate_image",
        description=(
            "Generate an image using Cosmic AI and automatically upload it to your media "
            "library. Requires write access."
        ),
        params_model=GenerateImageParams,
        handler=handle_generate_image,
        writes=True,
    ),
    ToolSpec(
        name="cosmic_ai_generate_video",
        description=(
            "Generate a video using Cosmic AI (powered by Veo) and automatically upload it "
            "to your media library. Requires write access."
        ),
        params_model=GenerateVideoParams,
        handler=handle_generate_video,
        writes=True,
    ),
]
