"""Tests for the combined tool registry."""

from __future__ import annotations

import pytest
from mcp import types

from cosmic_mcp.tools import ALL_TOOL_SPECS, ToolRegistry
from cosmic_mcp.tools.base import EmptyParams, ToolSpec, text_result

pytestmark = pytest.mark.unit

EXPECTED_TOOLS = [
    "cosmic_objects_list",
    "cosmic_objects_get",
    "cosmic_objects_create",
    "cosmic_objects_update",
    "cosmic_objects_delete",
    "cosmic_media_list",
    "cosmic_media_get",
    "cosmic_media_upload",
    "cosmic_media_delete",
    "cosmic_types_list",
    "cosmic_types_get",
    "cosmic_types_create",
    "cosmic_types_update",
    "cosmic_types_delete",
    "cosmic_ai_generate_text",
    "cosmic_ai_generate_image",
    "cosmic_ai_generate_video",
]


async def _noop(client, params):
    return text_result("ok")


class TestRegistry:
    def test_seventeen_tools_in_stable_order(self):
        registry = ToolRegistry()
        assert len(registry) == 17
        assert registry.names() == EXPECTED_TOOLS

    def test_every_descriptor_has_a_handler(self):
        registry = ToolRegistry()
        descriptor_names = [tool.name for tool in registry.descriptors()]
        assert descriptor_names == registry.names()
        for name in descriptor_names:
            spec = registry.get(name)
            assert spec is not None
            assert callable(spec.handler)

    def test_descriptors_are_mcp_tools(self):
        for tool in ToolRegistry().descriptors():
            assert isinstance(tool, types.Tool)
            assert tool.description
            assert tool.inputSchema["type"] == "object"
            assert "title" not in tool.inputSchema

    def test_optional_fields_do_not_advertise_null(self):
        for tool in ToolRegistry().descriptors():
            for prop in tool.inputSchema["properties"].values():
                assert prop.get("type") != "null"
                assert "anyOf" not in prop, tool.name

    def test_read_only_hints(self):
        hints = {tool.name: tool.annotations.readOnlyHint for tool in ToolRegistry().descriptors()}
        assert hints["cosmic_objects_list"] is True
        assert hints["cosmic_ai_generate_text"] is True
        assert hints["cosmic_media_upload"] is False
        assert hints["cosmic_types_delete"] is False

    def test_membership_and_lookup(self):
        registry = ToolRegistry()
        assert "cosmic_media_get" in registry
        assert "cosmic_media_rename" not in registry
        assert registry.get("cosmic_media_rename") is None
        assert [spec.name for spec in registry] == EXPECTED_TOOLS

    def test_duplicate_names_rejected(self):
        spec = ToolSpec(name="dup", description="d", params_model=EmptyParams, handler=_noop)
        with pytest.raises(ValueError, match="Duplicate tool name: dup"):
            ToolRegistry([spec, spec])

    def test_all_specs_unique(self):
        names = [spec.name for spec in ALL_TOOL_SPECS]
        assert len(names) == len(set(names))
