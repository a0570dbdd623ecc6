"""Tests for the object type tools and the recursive metafield schema."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from cosmic_mcp.server import ToolDispatcher
from cosmic_mcp.tools.object_types import (
    OBJECT_TYPE_TOOLS,
    CreateObjectTypeParams,
    Metafield,
    MetafieldType,
)
from tests.conftest import backend_calls, payload

pytestmark = pytest.mark.unit


def _nested(depth: int) -> dict:
    """A chain of ``parent`` metafields ``depth`` levels deep ending in a text leaf."""
    field = {"key": "leaf", "title": "Leaf", "type": "text"}
    for level in range(depth - 1):
        field = {"key": f"level{level}", "title": "Group", "type": "parent", "children": [field]}
    return field


class TestMetafield:
    def test_has_fifteen_kinds(self):
        assert len(MetafieldType) == 15
        assert MetafieldType.HTML_TEXTAREA.value == "html-textarea"
        assert MetafieldType.SELECT_DROPDOWN.value == "select-dropdown"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            Metafield.model_validate({"key": "k", "title": "K", "type": "color"})

    def test_arbitrary_depth(self):
        field = Metafield.model_validate(_nested(6))
        assert field.depth() == 6

    def test_nested_child_validated(self):
        bad = _nested(3)
        bad["children"][0]["children"][0]["type"] = "nope"
        with pytest.raises(ValidationError):
            Metafield.model_validate(bad)

    def test_options_require_key_and_value(self):
        with pytest.raises(ValidationError):
            Metafield.model_validate(
                {"key": "k", "title": "K", "type": "select-dropdown", "options": [{"key": "a"}]}
            )

    def test_strict_flags(self):
        with pytest.raises(ValidationError):
            Metafield.model_validate({"key": "k", "title": "K", "type": "text", "required": "yes"})

    def test_schema_is_self_referencing(self):
        schema = OBJECT_TYPE_TOOLS[2].input_schema()
        metafield = schema["$defs"]["Metafield"]
        assert metafield["properties"]["children"]["items"] == {"$ref": "#/$defs/Metafield"}
        assert metafield["required"] == ["key", "title", "type"]


class TestCatalog:
    def test_tool_names(self):
        assert [spec.name for spec in OBJECT_TYPE_TOOLS] == [
            "cosmic_types_list",
            "cosmic_types_get",
            "cosmic_types_create",
            "cosmic_types_update",
            "cosmic_types_delete",
        ]

    def test_list_takes_no_arguments(self):
        schema = OBJECT_TYPE_TOOLS[0].input_schema()
        assert schema["type"] == "object"
        assert schema["properties"] == {}

    def test_delete_warns_about_cascade(self):
        delete = OBJECT_TYPE_TOOLS[4]
        assert "delete all objects of this type" in delete.description
        assert delete.destructive is True


class TestReads:
    async def test_list(self, cosmic, call_tool):
        cosmic.object_types.find.return_value = {"object_types": [{"slug": "posts"}]}
        assert payload(await call_tool("cosmic_types_list")) == {"object_types": [{"slug": "posts"}]}

    async def test_get(self, cosmic, call_tool):
        result = await call_tool("cosmic_types_get", {"slug": "posts"})
        assert payload(result) == {"slug": "posts"}
        cosmic.object_types.find_one.assert_awaited_once_with("posts")


class TestCreate:
    async def test_nested_metafields_dumped_without_unset_keys(self, cosmic, call_tool):
        result = await call_tool(
            "cosmic_types_create",
            {
                "title": "Blog Posts",
                "slug": "blog-posts",
                "singular": "Blog Post",
                "metafields": [
                    {
                        "key": "sections",
                        "title": "Sections",
                        "type": "repeater",
                        "children": [
                            {"key": "heading", "title": "Heading", "type": "text", "required": True}
                        ],
                    },
                    {
                        "key": "author",
                        "title": "Author",
                        "type": "object",
                        "object_type": "authors",
                    },
                ],
                "options": {"slug_field": True},
            },
        )

        assert payload(result)["message"] == "Object type created successfully"
        cosmic.object_types.insert_one.assert_awaited_once_with(
            {
                "title": "Blog Posts",
                "slug": "blog-posts",
                "singular": "Blog Post",
                "metafields": [
                    {
                        "key": "sections",
                        "title": "Sections",
                        "type": "repeater",
                        "children": [
                            {"key": "heading", "title": "Heading", "type": "text", "required": True}
                        ],
                    },
                    {
                        "key": "author",
                        "title": "Author",
                        "type": "object",
                        "object_type": "authors",
                    },
                ],
                "options": {"slug_field": True},
            }
        )

    async def test_minimal(self, cosmic, call_tool):
        await call_tool("cosmic_types_create", {"title": "Posts", "slug": "posts"})
        cosmic.object_types.insert_one.assert_awaited_once_with({"title": "Posts", "slug": "posts"})

    async def test_invalid_metafield_rejected_before_backend(self, cosmic, call_tool):
        result = await call_tool(
            "cosmic_types_create",
            {"title": "Posts", "slug": "posts", "metafields": [{"key": "k", "type": "text"}]},
        )
        assert result.is_error is True
        assert backend_calls(cosmic) == []

    def test_params_accept_json_shaped_input(self):
        params = CreateObjectTypeParams.model_validate_json(
            json.dumps({"title": "T", "slug": "t", "metafields": [_nested(2)]})
        )
        assert params.metafields[0].type == "parent"


class TestUpdate:
    async def test_sparse_patch(self, cosmic, call_tool):
        result = await call_tool("cosmic_types_update", {"slug": "posts", "title": "Articles"})

        assert payload(result)["message"] == "Object type updated successfully"
        cosmic.object_types.update_one.assert_awaited_once_with("posts", {"title": "Articles"})

    async def test_options_patch_keeps_only_supplied_flags(self, cosmic, call_tool):
        await call_tool("cosmic_types_update", {"slug": "posts", "options": {"content_editor": False}})
        cosmic.object_types.update_one.assert_awaited_once_with(
            "posts", {"options": {"content_editor": False}}
        )

    async def test_null_metafields_rejected(self, cosmic, call_tool):
        result = await call_tool("cosmic_types_update", {"slug": "posts", "metafields": None})

        assert result.is_error is True
        assert backend_calls(cosmic) == []


class TestDelete:
    async def test_delete(self, cosmic, call_tool):
        result = await call_tool("cosmic_types_delete", {"slug": "posts"})
        assert payload(result) == {"message": "Object type deleted successfully", "slug": "posts"}
        cosmic.object_types.delete_one.assert_awaited_once_with("posts")


class TestWriteGate:
    @pytest.mark.parametrize(
        "name,arguments",
        [
            ("cosmic_types_create", {"title": "Posts", "slug": "posts"}),
            ("cosmic_types_update", {"slug": "posts", "title": "x"}),
            ("cosmic_types_delete", {"slug": "posts"}),
        ],
    )
    async def test_read_only_client_makes_no_backend_calls(
        self, read_only_cosmic, name, arguments
    ):
        result = await ToolDispatcher(read_only_cosmic).call_tool(name, arguments)

        assert result.is_error is True
        assert "COSMIC_WRITE_KEY" in result.text
        assert backend_calls(read_only_cosmic) == []
