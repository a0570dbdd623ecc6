"""Object management tools: list, get, create, update and delete Cosmic objects."""

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
    error_result,
    json_result,
    reports_errors,
)

logger = logging.getLogger(__name__)

StatusFilter = Literal["published", "draft", "any"]
Status = Literal["published", "draft"]
PageSize = Annotated[int, Field(ge=1, le=100)]
Offset = Annotated[int, Field(ge=0)]
Depth = Annotated[int, Field(ge=0, le=3)]

# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class ListObjectsParams(ToolParams):
    type: Maybe[str] = Field(default=None, description="Object type slug to filter by")
    status: StatusFilter = Field(default="any", description="Filter by publication status")
    limit: PageSize = Field(default=10, description="Maximum number of objects to return (1-100)")
    skip: Offset = Field(default=0, description="Number of objects to skip for pagination")
    props: Maybe[list[str]] = Field(default=None, description="Specific properties to return")
    sort: Maybe[str] = Field(
        default=None, description='Sort order (e.g., "-created_at" for descending)'
    )
    depth: Maybe[Depth] = Field(
        default=None, description="Depth of nested object relationships to include (0-3)"
    )
    query: Maybe[dict[str, Any]] = Field(
        default=None, description="Custom query object for advanced filtering"
    )


class GetObjectParams(ToolParams):
    id: Maybe[str] = Field(default=None, description="Object ID")
    slug: Maybe[str] = Field(default=None, description="Object slug (requires type parameter)")
    type: Maybe[str] = Field(
        default=None, description="Object type slug (required when using slug)"
    )
    props: Maybe[list[str]] = Field(default=None, description="Specific properties to return")
    status: StatusFilter = Field(default="any", description="Filter by publication status")


class CreateObjectParams(ToolParams):
    title: str = Field(description="Object title")
    type: str = Field(description="Object type slug")
    slug: Maybe[str] = Field(
        default=None, description="Custom slug (auto-generated if not provided)"
    )
    content: Maybe[str] = Field(default=None, description="Object content (HTML or plain text)")
    status: Status = Field(default="draft", description="Publication status")
    metadata: Maybe[dict[str, Any]] = Field(
        default=None, description="Metadata fields matching the object type schema"
    )
    locale: Maybe[str] = Field(default=None, description="Locale code for localized content")


class UpdateObjectParams(ToolParams):
    id: str = Field(description="Object ID to update")
    title: Maybe[str] = Field(default=None, description="New object title")
    slug: Maybe[str] = Field(default=None, description="New object slug")
    content: Maybe[str] = Field(default=None, description="New object content")
    status: Maybe[Status] = Field(default=None, description="New publication status")
    metadata: Maybe[dict[str, Any]] = Field(default=None, description="Updated metadata fields")


class DeleteObjectParams(ToolParams):
    id: str = Field(description="Object ID to delete")
    trigger_webhook: bool = Field(
        default=True, description="Whether to trigger webhooks on delete"
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@reports_errors("listing objects")
async def handle_list_objects(client: Any, params: ListObjectsParams) -> ToolResult:
    query: dict[str, Any] = dict(params.query or {})
    if params.type:
        query["type"] = params.type

    request = client.objects.find(query)
    if params.props:
        request = request.props(params.props)
    request = request.limit(params.limit)
    if params.skip:
        request = request.skip(params.skip)
    if params.sort:
        request = request.sort(params.sort)
    request = request.status(params.status)
    if params.depth is not None:
        request = request.depth(params.depth)

    response = await request
    return json_result({"objects": response.get("objects", []), "total": response.get("total")})


@reports_errors("getting object")
async def handle_get_object(client: Any, params: GetObjectParams) -> ToolResult:
    if not params.id and not params.slug:
        return error_result("Error: Either id or slug must be provided")
    if params.slug and not params.type:
        return error_result("Error: type is required when using slug to get an object")

    if params.id:
        request = client.objects.find_one({"id": params.id})
    else:
        request = client.objects.find_one({"type": params.type, "slug": params.slug})

    if params.props:
        request = request.props(params.props)
    request = request.status(params.status)

    response = await request
    return json_result(response.get("object"))


@reports_errors("creating object")
async def handle_create_object(client: Any, params: CreateObjectParams) -> ToolResult:
    require_write_access(client)

    data = params.supplied()
    data["title"] = params.title
    data["type"] = params.type
    data["status"] = params.status

    response = await client.objects.insert_one(data)
    logger.info("Created object %s", (response.get("object") or {}).get("id"))
    return json_result({"message": "Object created successfully", "object": response.get("object")})


@reports_errors("updating object")
async def handle_update_object(client: Any, params: UpdateObjectParams) -> ToolResult:
    require_write_access(client)

    patch = params.supplied("title", "slug", "content", "status", "metadata")
    response = await client.objects.update_one(params.id, patch)
    logger.info("Updated object %s (fields=%s)", params.id, sorted(patch))
    return json_result({"message": "Object updated successfully", "object": response.get("object")})


@reports_errors("deleting object")
async def handle_delete_object(client: Any, params: DeleteObjectParams) -> ToolResult:
    require_write_access(client)

    await client.objects.delete_one(params.id, params.trigger_webhook)
    logger.info("Deleted object %s", params.id)
    return json_result({"message": "Object deleted successfully", "id": params.id})


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

OBJECT_TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="cosmic_objects_list",
        description=(
            "List objects from the Cosmic bucket with optional filters for type, status, "
            "and pagination. Returns an array of objects with their metadata."
        ),
        params_model=ListObjectsParams,
        handler=handle_list_objects,
    ),
    ToolSpec(
        name="cosmic_objects_get",
        description=(
            "Get a single object by ID or by slug+type. "
            "Returns the full object with all metadata."
        ),
        params_model=GetObjectParams,
        handler=handle_get_object,
    ),
    ToolSpec(
        name="cosmic_objects_create",
        description="Create a new object in the Cosmic bucket. Requires write access.",
        params_model=CreateObjectParams,
        handler=handle_create_object,
        writes=True,
    ),
    ToolSpec(
        name="cosmic_objects_update",
        description=(
            "Update an existing object by ID. Only provided fields will be updated. "
            "Requires write access."
        ),
        params_model=UpdateObjectParams,
        handler=handle_update_object,
        writes=True,
    ),
    ToolSpec(
        name="cosmic_objects_delete",
        description="Delete an object by ID. This action is permanent. Requires write access.",
        params_model=DeleteObjectParams,
        handler=handle_delete_object,
        writes=True,
        destructive=True,
    ),
]
