"""Object type tools: list, get, create, update and delete content-type schemas.

Object types are described by an ordered list of metafields.  Composite
metafield kinds (``repeater``, ``parent``) carry child metafields of the same
shape, so :class:`Metafield` is self-referencing and nests to any depth.
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

from cosmic_mcp.client import require_write_access
from cosmic_mcp.tools.base import (
    EmptyParams,
    Maybe,
    ToolParams,
    ToolResult,
    ToolSpec,
    json_result,
    reports_errors,
)

logger = logging.getLogger(__name__)


class MetafieldType(enum.StrEnum):
    """The fixed set of metafield kinds supported by Cosmic."""

    TEXT = "text"
    TEXTAREA = "textarea"
    HTML_TEXTAREA = "html-textarea"
    MARKDOWN = "markdown"
    NUMBER = "number"
    DATE = "date"
    SWITCH = "switch"
    SELECT_DROPDOWN = "select-dropdown"
    RADIO_BUTTONS = "radio-buttons"
    CHECK_BOXES = "check-boxes"
    FILE = "file"
    OBJECT = "object"
    OBJECTS = "objects"
    REPEATER = "repeater"
    PARENT = "parent"


class MetafieldOption(BaseModel):
    key: StrictStr
    value: StrictStr


class Metafield(BaseModel):
    """A single field definition inside an object type schema."""

    model_config = ConfigDict(use_enum_values=True)

    key: StrictStr = Field(description="Unique key for the metafield")
    title: StrictStr = Field(description="Display title for the metafield")
    type: MetafieldType = Field(description="Metafield type")
    required: Maybe[StrictBool] = Field(
        default=None, description="Whether this field is required"
    )
    value: Any = Field(default=None, description="Default value")
    options: Maybe[list[MetafieldOption]] = Field(
        default=None, description="Options for select/radio/checkbox types"
    )
    children: Maybe[list[Metafield]] = Field(
        default=None, description="Child metafields for repeater/parent types"
    )
    object_type: Maybe[StrictStr] = Field(
        default=None, description="Object type slug for object/objects type metafields"
    )

    def depth(self) -> int:
        """Nesting depth: 1 for a leaf, 1 + deepest child otherwise."""
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)


class ObjectTypeOptions(BaseModel):
    slug_field: Maybe[StrictBool] = Field(default=None, description="Enable slug field")
    content_editor: Maybe[StrictBool] = Field(default=None, description="Enable content editor")


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class GetObjectTypeParams(ToolParams):
    slug: str = Field(description="Object type slug")


class CreateObjectTypeParams(ToolParams):
    title: str = Field(description='Object type title (plural form, e.g., "Blog Posts")')
    slug: str = Field(
        description='Object type slug (URL-friendly identifier, e.g., "blog-posts")'
    )
    singular: Maybe[str] = Field(
        default=None, description='Singular form of the title (e.g., "Blog Post")'
    )
    metafields: Maybe[list[Metafield]] = Field(
        default=None, description="Array of metafield definitions for this object type"
    )
    options: Maybe[ObjectTypeOptions] = Field(default=None, description="Object type options")


class UpdateObjectTypeParams(ToolParams):
    slug: str = Field(description="Object type slug to update")
    title: Maybe[str] = Field(default=None, description="New object type title")
    singular: Maybe[str] = Field(default=None, description="New singular form of the title")
    metafields: Maybe[list[Metafield]] = Field(
        default=None, description="Updated array of metafield definitions"
    )
    options: Maybe[ObjectTypeOptions] = Field(
        default=None, description="Updated object type options"
    )


class DeleteObjectTypeParams(ToolParams):
    slug: str = Field(description="Object type slug to delete")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@reports_errors("listing object types")
async def handle_list_object_types(client: Any, params: EmptyParams) -> ToolResult:
    response = await client.object_types.find()
    return json_result({"object_types": response.get("object_types", [])})


@reports_errors("getting object type")
async def handle_get_object_type(client: Any, params: GetObjectTypeParams) -> ToolResult:
    response = await client.object_types.find_one(params.slug)
    return json_result(response.get("object_type"))


@reports_errors("creating object type")
async def handle_create_object_type(client: Any, params: CreateObjectTypeParams) -> ToolResult:
    require_write_access(client)

    data = params.supplied("singular", "metafields", "options")
    data["title"] = params.title
    data["slug"] = params.slug

    response = await client.object_types.insert_one(data)
    logger.info("Created object type %s", params.slug)
    return json_result(
        {"message": "Object type created successfully", "object_type": response.get("object_type")}
    )


@reports_errors("updating object type")
async def handle_update_object_type(client: Any, params: UpdateObjectTypeParams) -> ToolResult:
    require_write_access(client)

    patch = params.supplied("title", "singular", "metafields", "options")
    response = await client.object_types.update_one(params.slug, patch)
    logger.info("Updated object type %s (fields=%s)", params.slug, sorted(patch))
    return json_result(
        {"message": "Object type updated successfully", "object_type": response.get("object_type")}
    )


@reports_errors("deleting object type")
async def handle_delete_object_type(client: Any, params: DeleteObjectTypeParams) -> ToolResult:
    require_write_access(client)

    await client.object_types.delete_one(params.slug)
    logger.info("Deleted object type %s", params.slug)
    return json_result({"message": "Object type deleted successfully", "slug": params.slug})


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

OBJECT_TYPE_TOOLS: list[ToolSpec] = [
    ToolSpec(
        name="cosmic_types_list",
        description=(
            "List all object types in the Cosmic bucket. Returns the schema definitions "
            "including metafields for each type."
        ),
        params_model=EmptyParams,
        handler=handle_list_object_types,
    ),
    ToolSpec(
        name="cosmic_types_get",
        description=(
            "Get a single object type by slug. "
            "Returns the full schema including all metafield definitions."
        ),
        params_model=GetObjectTypeParams,
        handler=handle_get_object_type,
    ),
    ToolSpec(
        name="cosmic_types_create",
        description=(
            "Create a new object type with a custom schema. Define metafields to structure "
            "your content. Requires write access."
        ),
        params_model=CreateObjectTypeParams,
        handler=handle_create_object_type,
        writes=True,
    ),
    ToolSpec(
        name="cosmic_types_update",
        description=(
            "Update an existing object type schema. Can modify title, metafields, and options. "
            "Requires write access."
        ),
        params_model=UpdateObjectTypeParams,
        handler=handle_update_object_type,
        writes=True,
    ),
    ToolSpec(
        name="cosmic_types_delete",
        description=(
            "Delete an object type by slug. WARNING: This will also delete all objects "
            "of this type. Requires write access."
        ),
        params_model=DeleteObjectTypeParams,
        handler=handle_delete_object_type,
        writes=True,
        destructive=True,
    ),
]
