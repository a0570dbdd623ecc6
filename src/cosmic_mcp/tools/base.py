"""Shared building blocks for the Cosmic tool catalogs.

Every tool is a :class:`ToolSpec`: a name, a description, a pydantic model that
both validates call arguments and renders the advertised ``inputSchema``, and
an async handler ``(client, params) -> ToolResult``.
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Annotated, Any, TypeVar

from mcp import types
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Optional parameter: may be omitted (the field then defaults to None) but an
# explicit null is rejected.  Omission is tracked through ``model_fields_set``.
Maybe = Annotated[T, "optional"]


class ToolParams(BaseModel):
    """Base class for tool argument models.

    Strict mode keeps JSON types honest (no ``"10"`` -> ``10`` coercion);
    unknown keys are ignored.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    def supplied(self, *names: str) -> dict[str, Any]:
        """Return only the fields the caller actually sent.

        With ``names``, restrict the result to those fields.  Nested models are
        dumped without their own unset fields.
        """
        data = self.model_dump(exclude_unset=True, mode="json")
        if names:
            data = {k: v for k, v in data.items() if k in names}
        return data


class EmptyParams(ToolParams):
    """Arguments model for tools that take no parameters."""


# ---------------------------------------------------------------------------
# Result envelope
# ---------------------------------------------------------------------------


@dataclass
class ToolResult:
    """Uniform ``{content, isError}`` envelope returned by every tool call."""

    content: list[dict[str, str]] = field(default_factory=list)
    is_error: bool = False

    @property
    def text(self) -> str:
        """Concatenated text of all content blocks."""
        return "\n".join(block.get("text", "") for block in self.content)

    def to_call_tool_result(self) -> types.CallToolResult:
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=b["text"]) for b in self.content],
            isError=self.is_error,
        )


def text_result(text: str) -> ToolResult:
    return ToolResult(content=[{"type": "text", "text": text}])


def json_result(payload: Any) -> ToolResult:
    return text_result(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def error_result(text: str) -> ToolResult:
    return ToolResult(content=[{"type": "text", "text": text}], is_error=True)


def error_message(exc: BaseException) -> str:
    return str(exc) or "Unknown error"


Handler = Callable[[Any, Any], Awaitable[ToolResult]]
_H = TypeVar("_H", bound=Handler)


def reports_errors(action: str) -> Callable[[_H], _H]:
    """Turn any exception raised by a handler into ``Error <action>: <message>``.

    Usage::

        @reports_errors("listing objects")
        async def handle_list_objects(client, params): ...
    """

    def decorator(func: _H) -> _H:
        @functools.wraps(func)
        async def _wrapper(client: Any, params: Any) -> ToolResult:
            try:
                return await func(client, params)
            except Exception as exc:
                logger.warning("Tool handler %s failed: %s", func.__name__, exc)
                return error_result(f"Error {action}: {error_message(exc)}")

        return _wrapper  # type: ignore[return-value]

    return decorator


# ---------------------------------------------------------------------------
# Tool specs
# ---------------------------------------------------------------------------


def _clean_schema(node: Any) -> Any:
    """Drop pydantic's auto-generated titles and ``default: null`` markers."""
    if isinstance(node, dict):
        cleaned: dict[str, Any] = {}
        for key, value in node.items():
            if key == "title" and isinstance(value, str):
                continue
            if key == "default" and value is None:
                continue
            if key in ("properties", "$defs"):
                cleaned[key] = {name: _clean_schema(sub) for name, sub in value.items()}
            else:
                cleaned[key] = _clean_schema(value)
        return cleaned
    if isinstance(node, list):
        return [_clean_schema(item) for item in node]
    return node


@dataclass(frozen=True)
class ToolSpec:
    """One entry of a tool catalog."""

    name: str
    description: str
    params_model: type[ToolParams]
    handler: Handler
    writes: bool = False
    destructive: bool = False

    def input_schema(self) -> dict[str, Any]:
        schema = _clean_schema(self.params_model.model_json_schema())
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def descriptor(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema(),
            annotations=types.ToolAnnotations(
                readOnlyHint=not self.writes,
                destructiveHint=self.destructive,
            ),
        )

    async def invoke(self, client: Any, arguments: dict[str, Any] | None) -> ToolResult:
        """Validate ``arguments`` and run the handler.

        Validation errors propagate; the dispatcher reports them.
        """
        # Arguments are decoded JSON; JSON-mode validation keeps strict scalar
        # typing while accepting plain objects for nested models.
        params = self.params_model.model_validate_json(json.dumps(arguments or {}))
        return await self.handler(client, params)
