"""Cosmic tool catalogs and the registry that combines them.

Catalog order is fixed (objects, media, object types, AI) so tool listings
are reproducible.  Tool names are the public contract toward MCP callers.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from mcp import types

from cosmic_mcp.tools.ai import AI_TOOLS
from cosmic_mcp.tools.base import ToolResult, ToolSpec
from cosmic_mcp.tools.media import MEDIA_TOOLS
from cosmic_mcp.tools.object_types import OBJECT_TYPE_TOOLS
from cosmic_mcp.tools.objects import OBJECT_TOOLS

ALL_TOOL_SPECS: list[ToolSpec] = [
    *OBJECT_TOOLS,
    *MEDIA_TOOLS,
    *OBJECT_TYPE_TOOLS,
    *AI_TOOLS,
]


class ToolRegistry:
    """Name -> :class:`ToolSpec` lookup over an ordered list of specs.

    Raises
    ------
    ValueError
        If two specs share a name.
    """

    def __init__(self, specs: Iterable[ToolSpec] | None = None) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for spec in ALL_TOOL_SPECS if specs is None else specs:
            if spec.name in self._specs:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            self._specs[spec.name] = spec
        self._descriptors = [spec.descriptor() for spec in self._specs.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return list(self._specs)

    def descriptors(self) -> list[types.Tool]:
        return list(self._descriptors)


__all__ = ["ALL_TOOL_SPECS", "ToolRegistry", "ToolResult", "ToolSpec"]
