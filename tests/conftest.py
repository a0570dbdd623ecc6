"""Shared fixtures for the cosmic_mcp test suite.

The ``cosmic`` fixtures are ``MagicMock`` stand-ins for :class:`CosmicClient`:
write methods are ``AsyncMock`` and ``find``/``find_one`` return a
:class:`FakeQuery` that records chained refiners and resolves when awaited.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from cosmic_mcp.client import reset_client
from cosmic_mcp.config import CosmicConfig
from cosmic_mcp.server import ToolDispatcher
from cosmic_mcp.tools.base import ToolResult

BACKEND_RESOURCES = ("objects", "media", "object_types", "ai")


class FakeQuery:
    """Awaitable stand-in for the client's chainable query builders."""

    def __init__(self, response: dict[str, Any] | None = None, error: Exception | None = None):
        self.response = response if response is not None else {}
        self.error = error
        self.options: dict[str, Any] = {}
        self.awaited = False

    def _set(self, key: str, value: Any) -> FakeQuery:
        self.options[key] = value
        return self

    def props(self, value: Any) -> FakeQuery:
        return self._set("props", value)

    def limit(self, value: int) -> FakeQuery:
        return self._set("limit", value)

    def skip(self, value: int) -> FakeQuery:
        return self._set("skip", value)

    def sort(self, value: str) -> FakeQuery:
        return self._set("sort", value)

    def status(self, value: str) -> FakeQuery:
        return self._set("status", value)

    def depth(self, value: int) -> FakeQuery:
        return self._set("depth", value)

    async def _run(self) -> dict[str, Any]:
        self.awaited = True
        if self.error is not None:
            raise self.error
        return self.response

    def __await__(self):
        return self._run().__await__()


def make_cosmic(*, write: bool = True) -> MagicMock:
    """Build a mock Cosmic client with canned empty responses."""
    client = MagicMock(name="CosmicClient")
    client.has_write_access = write
    client.config = SimpleNamespace(bucket_slug="test-bucket")

    client.objects.find = MagicMock(return_value=FakeQuery({"objects": [], "total": 0}))
    client.objects.find_one = MagicMock(return_value=FakeQuery({"object": {"id": "obj-1"}}))
    client.objects.insert_one = AsyncMock(return_value={"object": {"id": "obj-new"}})
    client.objects.update_one = AsyncMock(return_value={"object": {"id": "obj-1"}})
    client.objects.delete_one = AsyncMock(return_value={})

    client.media.find = MagicMock(return_value=FakeQuery({"media": [], "total": 0}))
    client.media.find_one = MagicMock(return_value=FakeQuery({"media": {"id": "med-1"}}))
    client.media.insert_one = AsyncMock(return_value={"media": {"id": "med-new"}})
    client.media.delete_one = AsyncMock(return_value={})

    client.object_types.find = AsyncMock(return_value={"object_types": []})
    client.object_types.find_one = AsyncMock(return_value={"object_type": {"slug": "posts"}})
    client.object_types.insert_one = AsyncMock(return_value={"object_type": {"slug": "posts"}})
    client.object_types.update_one = AsyncMock(return_value={"object_type": {"slug": "posts"}})
    client.object_types.delete_one = AsyncMock(return_value={})

    client.ai.generate_text = AsyncMock(
        return_value={"text": "Hello", "model": "gpt-4", "usage": {"total_tokens": 3}}
    )
    client.ai.generate_image = AsyncMock(return_value={"media": {"id": "img-1"}})
    client.ai.generate_video = AsyncMock(
        return_value={"media": {"id": "vid-1"}, "usage": {"seconds": 4}}
    )
    return client


def backend_calls(client: MagicMock) -> list:
    """Every call made on the client's resource collections."""
    calls: list = []
    for resource in BACKEND_RESOURCES:
        calls.extend(getattr(client, resource).mock_calls)
    return calls


def payload(result: ToolResult) -> Any:
    """Decode the JSON text of a successful tool result."""
    assert result.is_error is False, result.text
    return json.loads(result.text)


@pytest.fixture
def cosmic() -> MagicMock:
    """Mock client configured with a write key."""
    return make_cosmic(write=True)


@pytest.fixture
def read_only_cosmic() -> MagicMock:
    """Mock client configured without a write key."""
    return make_cosmic(write=False)


@pytest.fixture
def call_tool(cosmic: MagicMock):
    """Dispatch a tool call against the write-enabled mock client."""
    dispatcher = ToolDispatcher(cosmic)

    async def _call(name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        return await dispatcher.call_tool(name, arguments)

    return _call


@pytest.fixture
def config() -> CosmicConfig:
    return CosmicConfig(
        bucket_slug="test-bucket",
        read_key="read-key-123456",
        write_key="write-key-abcdef",
        api_url="https://api.test/v3",
        upload_url="https://workers.test/v3",
        timeout=5.0,
    )


@pytest.fixture
def cosmic_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Populate the Cosmic environment variables and clear optional ones."""
    monkeypatch.setenv("COSMIC_BUCKET_SLUG", "env-bucket")
    monkeypatch.setenv("COSMIC_READ_KEY", "env-read-key")
    for name in ("COSMIC_WRITE_KEY", "COSMIC_API_URL", "COSMIC_UPLOAD_URL", "COSMIC_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    reset_client()
    yield
    reset_client()
