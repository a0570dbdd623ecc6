"""Media management tools: list, get, upload and delete Cosmic media files."""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import re
from typing import Annotated, Any

from pydantic import Field

from cosmic_mcp.client import require_write_access
from cosmic_mcp.tools.base import (
    Maybe,
    ToolParams,
    ToolResult,
    ToolSpec,
    error_result,
    json_result,
    reports_errors,
)

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:"
_DATA_URI_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)
INVALID_DATA_URI_MESSAGE = (
    "Error: Invalid base64 data URI format. Expected format: data:<mimetype>;base64,<data>"
)

PageSize = Annotated[int, Field(ge=1, le=100)]
Offset = Annotated[int, Field(ge=0)]


class InvalidDataURI(ValueError):
    """Raised when an inline ``data:`` payload cannot be parsed or decoded."""


def decode_data_uri(value: str) -> tuple[str, bytes]:
    """Split ``data:<mime>;base64,<payload>`` into ``(mime, raw bytes)``.

    Raises
    ------
    InvalidDataURI
        If the string does not match the expected shape or the payload is not
        valid base64.
    """
    match = _DATA_URI_RE.match(value)
    if match is None:
        raise InvalidDataURI(INVALID_DATA_URI_MESSAGE)
    mime, payload = match.groups()
    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidDataURI(INVALID_DATA_URI_MESSAGE) from None


def _filename_for(mime: str) -> str:
    extension = mimetypes.guess_extension(mime) or ""
    return f"upload{extension}"


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class ListMediaParams(ToolParams):
    folder: Maybe[str] = Field(default=None, description="Filter by folder slug")
    limit: PageSize = Field(
        default=10, description="Maximum number of media files to return (1-100)"
    )
    skip: Offset = Field(default=0, description="Number of media files to skip for pagination")
    props: Maybe[list[str]] = Field(default=None, description="Specific properties to return")
    query: Maybe[dict[str, Any]] = Field(
        default=None, description="Custom query object for advanced filtering"
    )


class GetMediaParams(ToolParams):
    id: str = Field(description="Media file ID")
    props: Maybe[list[str]] = Field(default=None, description="Specific properties to return")


class UploadMediaParams(ToolParams):
    media: str = Field(
        description=(
            "URL to fetch media from, or base64-encoded data with data URI prefix "
            '(e.g., "data:image/png;base64,...")'
        )
    )
    folder: Maybe[str] = Field(default=None, description="Folder to upload to")
    metadata: Maybe[dict[str, Any]] = Field(
        default=None, description="Additional metadata for the media file"
    )
    trigger_webhook: bool = Field(
        default=True, description="Whether to trigger webhooks on upload"
    )


class DeleteMediaParams(ToolParams):
    id: str = Field(description="Media file ID to delete")
    trigger_webhook: bool = Field(
        default=True, description="Whether to trigger webhooks on delete"
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@reports_errors("listing media")
async def handle_list_media(client: Any, params: ListMediaParams) -> ToolResult:
    query: dict[str, Any] = dict(params.query or {})
    if params.folder:
        query["folder"] = params.folder

    request = client.media.find(query)
    if params.props:
        request = request.props(params.props)
    request = request.limit(params.limit)
    if params.skip:
        request = request.skip(params.skip)

    response = await request
    return json_result({"media": response.get("media", []), "total": response.get("total")})


@reports_errors("getting media")
async def handle_get_media(client: Any, params: GetMediaParams) -> ToolResult:
    request = client.media.find_one({"id": params.id})
    if params.props:
        request = request.props(params.props)

    response = await request
    return json_result(response.get("media"))


@reports_errors("uploading media")
async def handle_upload_media(client: Any, params: UploadMediaParams) -> ToolResult:
    require_write_access(client)

    upload: dict[str, Any] = {"trigger_webhook": params.trigger_webhook}
    if params.media.startswith(DATA_URI_PREFIX):
        try:
            mime, payload = decode_data_uri(params.media)
        except InvalidDataURI as exc:
            return error_result(str(exc))
        media: bytes | str = payload
        upload["content_type"] = mime
        upload["filename"] = _filename_for(mime)
    else:
        media = params.media

    if params.folder is not None:
        upload["folder"] = params.folder
    if params.metadata is not None:
        upload["metadata"] = params.metadata

    response = await client.media.insert_one(media, **upload)
    logger.info("Uploaded media %s", (response.get("media") or {}).get("id"))
    return json_result({"message": "Media uploaded successfully", "media": response.get("media")})


@reports_errors("deleting media")
async def handle_delete_media(client: Any, params: DeleteMediaParams) -> ToolResult:
    require_write_access(client)

    await client.media.delete_one(params.id, params.trigger_webhook)
    logger.info("Deleted media %s", params.id)
    return json_result({"message": "Media deleted successfully", "id": params.id})


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

MEDIA_TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="cosmic_media_list",
        description=(
            "List media files from the Cosmic bucket with optional folder filter and pagination."
        ),
        params_model=ListMediaParams,
        handler=handle_list_media,
    ),
    ToolSpec(
        name="cosmic_media_get",
        description=(
            "Get details of a single media file by ID. "
            "Returns the full media object with URL and metadata."
        ),
        params_model=GetMediaParams,
        handler=handle_get_media,
    ),
    ToolSpec(
        name="cosmic_media_upload",
        description=(
            "Upload a media file to the Cosmic bucket from a URL or base64-encoded data. "
            "Requires write access."
        ),
        params_model=UploadMediaParams,
        handler=handle_upload_media,
        writes=True,
    ),
    ToolSpec(
        name="cosmic_media_delete",
        description=(
            "Delete a media file by ID. This action is permanent. Requires write access."
        ),
        params_model=DeleteMediaParams,
        handler=handle_delete_media,
        writes=True,
        destructive=True,
    ),
]
