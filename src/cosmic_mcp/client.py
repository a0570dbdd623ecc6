"""Async REST client for the Cosmic v3 API, and the process-wide accessor.

Transport layer:
- REST: ``httpx.AsyncClient``.  Reads carry ``read_key`` as a query parameter;
  writes carry ``Authorization: Bearer <write_key>``.
- Media and AI asset generation go to the workers host (``upload_url``);
  everything else goes to ``api_url``.

Resource collections mirror the shape of the JavaScript SDK: ``objects``,
``media``, ``object_types`` and ``ai``.  ``find``/``find_one`` return chainable
query builders that are awaited to execute::

    response = await client.objects.find({"type": "posts"}).limit(5).status("any")

Every failure (non-2xx response or transport error) is raised as
:class:`CosmicAPIError` carrying the backend's message verbatim.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Awaitable, Callable, Generator
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from cosmic_mcp.config import ENV_WRITE_KEY, CosmicConfig, load_config

logger = logging.getLogger(__name__)

WRITE_ACCESS_MESSAGE = (
    f"Write operations require {ENV_WRITE_KEY} environment variable to be set"
)

# Ceiling for media downloaded from a caller-supplied URL before re-upload.
MAX_REMOTE_MEDIA_BYTES = 100 * 1024 * 1024


class CosmicAPIError(Exception):
    """Raised when the Cosmic API rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WriteAccessError(PermissionError):
    """Raised when a mutating operation is attempted without a write key."""

    def __init__(self, message: str = WRITE_ACCESS_MESSAGE) -> None:
        super().__init__(message)


def _segment(value: Any) -> str:
    """Encode one caller-supplied path segment (id or slug).

    Slashes and query characters are escaped so the value cannot leave its
    segment; dot segments are refused because URL normalization would drop them.
    """
    text = str(value)
    if text in ("", ".", ".."):
        raise ValueError(f"Invalid path segment: {text!r}")
    return quote(text, safe="")


def _error_message(resp: httpx.Response) -> str:
    """Pull the most useful message out of an error response body."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    text = resp.text.strip()
    if text and len(text) <= 500:
        return text
    return f"{resp.status_code} {resp.reason_phrase}".strip()


# ---------------------------------------------------------------------------
# Chainable queries
# ---------------------------------------------------------------------------


class _ChainedQuery:
    """Awaitable query builder; refiners record options and return ``self``."""

    def __init__(
        self,
        runner: Callable[[dict[str, Any], dict[str, Any]], Awaitable[dict[str, Any]]],
        query: dict[str, Any],
    ) -> None:
        self._runner = runner
        self.query = dict(query)
        self.options: dict[str, Any] = {}

    def _refine(self, key: str, value: Any) -> _ChainedQuery:
        self.options[key] = value
        return self

    def __await__(self) -> Generator[Any, None, dict[str, Any]]:
        return self._runner(self.query, self.options).__await__()


class FindQuery(_ChainedQuery):
    """``objects.find`` query supporting every refiner."""

    def props(self, props: list[str] | str) -> FindQuery:
        return self._refine("props", props)  # type: ignore[return-value]

    def limit(self, limit: int) -> FindQuery:
        return self._refine("limit", limit)  # type: ignore[return-value]

    def skip(self, skip: int) -> FindQuery:
        return self._refine("skip", skip)  # type: ignore[return-value]

    def sort(self, sort: str) -> FindQuery:
        return self._refine("sort", sort)  # type: ignore[return-value]

    def status(self, status: str) -> FindQuery:
        return self._refine("status", status)  # type: ignore[return-value]

    def depth(self, depth: int) -> FindQuery:
        return self._refine("depth", depth)  # type: ignore[return-value]


class FindOneQuery(_ChainedQuery):
    """``objects.find_one`` query."""

    def props(self, props: list[str] | str) -> FindOneQuery:
        return self._refine("props", props)  # type: ignore[return-value]

    def status(self, status: str) -> FindOneQuery:
        return self._refine("status", status)  # type: ignore[return-value]

    def depth(self, depth: int) -> FindOneQuery:
        return self._refine("depth", depth)  # type: ignore[return-value]


class MediaFindQuery(_ChainedQuery):
    """``media.find`` query."""

    def props(self, props: list[str] | str) -> MediaFindQuery:
        return self._refine("props", props)  # type: ignore[return-value]

    def limit(self, limit: int) -> MediaFindQuery:
        return self._refine("limit", limit)  # type: ignore[return-value]

    def skip(self, skip: int) -> MediaFindQuery:
        return self._refine("skip", skip)  # type: ignore[return-value]


class MediaFindOneQuery(_ChainedQuery):
    """``media.find_one`` query."""

    def props(self, props: list[str] | str) -> MediaFindOneQuery:
        return self._refine("props", props)  # type: ignore[return-value]


def _query_params(options: dict[str, Any]) -> dict[str, Any]:
    """Render refiner options as query-string parameters."""
    params: dict[str, Any] = {}
    for key, value in options.items():
        if value is None:
            continue
        if key == "props" and isinstance(value, list | tuple):
            value = ",".join(value)
        params[key] = value
    return params


# ---------------------------------------------------------------------------
# Resource collections
# ---------------------------------------------------------------------------


class ObjectsResource:
    def __init__(self, client: CosmicClient) -> None:
        self._client = client

    def find(self, query: dict[str, Any] | None = None) -> FindQuery:
        return FindQuery(self._find, query or {})

    def find_one(self, query: dict[str, Any]) -> FindOneQuery:
        return FindOneQuery(self._find_one, query)

    async def _find(self, query: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
        params = _query_params(options)
        if query:
            params["query"] = json.dumps(query)
        return await self._client.request("GET", "/objects", params=params)

    async def _find_one(self, query: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
        params = _query_params(options)
        if set(query) == {"id"}:
            path = f"/objects/{_segment(query['id'])}"
            return await self._client.request("GET", path, params=params)

        params["query"] = json.dumps(query)
        params["limit"] = 1
        data = await self._client.request("GET", "/objects", params=params)
        objects = data.get("objects") or []
        if not objects:
            raise CosmicAPIError("No objects found", status_code=404)
        return {"object": objects[0]}

    async def insert_one(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request("POST", "/objects", json=data, write=True)

    async def update_one(self, object_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request(
            "PATCH", f"/objects/{_segment(object_id)}", json=patch, write=True
        )

    async def delete_one(self, object_id: str, trigger_webhook: bool = True) -> dict[str, Any]:
        return await self._client.request(
            "DELETE",
            f"/objects/{_segment(object_id)}",
            params={"trigger_webhook": str(trigger_webhook).lower()},
            write=True,
        )


class MediaResource:
    def __init__(self, client: CosmicClient) -> None:
        self._client = client

    def find(self, query: dict[str, Any] | None = None) -> MediaFindQuery:
        return MediaFindQuery(self._find, query or {})

    def find_one(self, query: dict[str, Any]) -> MediaFindOneQuery:
        return MediaFindOneQuery(self._find_one, query)

    async def _find(self, query: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
        params = _query_params(options)
        if query:
            params["query"] = json.dumps(query)
        return await self._client.request("GET", "/media", params=params)

    async def _find_one(self, query: dict[str, Any], options: dict[str, Any]) -> dict[str, Any]:
        params = _query_params(options)
        return await self._client.request("GET", f"/media/{_segment(query['id'])}", params=params)

    async def insert_one(
        self,
        media: bytes | str,
        *,
        folder: str | None = None,
        metadata: dict[str, Any] | None = None,
        trigger_webhook: bool = True,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Upload a media file.

        ``media`` is either the raw file bytes or a remote URL.  A URL is
        downloaded here and re-sent as a multipart upload; the Cosmic upload
        endpoint only accepts file bodies.
        """
        if isinstance(media, str):
            media, fetched_name, fetched_type = await self._client.fetch_remote(media)
            filename = filename or fetched_name
            content_type = content_type or fetched_type

        form: dict[str, str] = {"trigger_webhook": str(trigger_webhook).lower()}
        if folder is not None:
            form["folder"] = folder
        if metadata is not None:
            form["metadata"] = json.dumps(metadata)

        files = {
            "media": (
                filename or "upload",
                media,
                content_type or "application/octet-stream",
            )
        }
        return await self._client.request(
            "POST", "/media", data=form, files=files, write=True, upload=True
        )

    async def delete_one(self, media_id: str, trigger_webhook: bool = True) -> dict[str, Any]:
        return await self._client.request(
            "DELETE",
            f"/media/{_segment(media_id)}",
            params={"trigger_webhook": str(trigger_webhook).lower()},
            write=True,
        )


class ObjectTypesResource:
    def __init__(self, client: CosmicClient) -> None:
        self._client = client

    async def find(self) -> dict[str, Any]:
        return await self._client.request("GET", "/object-types")

    async def find_one(self, slug: str) -> dict[str, Any]:
        return await self._client.request("GET", f"/object-types/{_segment(slug)}")

    async def insert_one(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request("POST", "/object-types", json=data, write=True)

    async def update_one(self, slug: str, patch: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request(
            "PATCH", f"/object-types/{_segment(slug)}", json=patch, write=True
        )

    async def delete_one(self, slug: str) -> dict[str, Any]:
        return await self._client.request(
            "DELETE", f"/object-types/{_segment(slug)}", write=True
        )


class AIResource:
    def __init__(self, client: CosmicClient) -> None:
        self._client = client

    async def generate_text(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request("POST", "/ai/text", json=data)

    async def generate_image(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request("POST", "/ai/image", json=data, write=True, upload=True)

    async def generate_video(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._client.request("POST", "/ai/video", json=data, write=True, upload=True)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class CosmicClient:
    """Bucket-scoped Cosmic API client.

    Holds only the immutable :class:`CosmicConfig` and an httpx connection
    pool, so a single instance is safe to share across concurrent tool calls.
    """

    def __init__(
        self,
        config: CosmicConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        max_remote_bytes: int = MAX_REMOTE_MEDIA_BYTES,
    ) -> None:
        self.config = config
        self.max_remote_bytes = max_remote_bytes
        self._http = httpx.AsyncClient(
            timeout=config.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.objects = ObjectsResource(self)
        self.media = MediaResource(self)
        self.object_types = ObjectTypesResource(self)
        self.ai = AIResource(self)

    @property
    def has_write_access(self) -> bool:
        return self.config.has_write_access

    def _url(self, path: str, *, upload: bool) -> str:
        base = self.config.upload_url if upload else self.config.api_url
        return f"{base}/buckets/{self.config.bucket_slug}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        write: bool = False,
        upload: bool = False,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises
        ------
        WriteAccessError
            ``write=True`` and no write key is configured.
        CosmicAPIError
            Non-2xx status or transport failure.
        """
        headers: dict[str, str] = {}
        query: dict[str, Any] = dict(params or {})
        if write:
            if not self.config.write_key:
                raise WriteAccessError()
            headers["Authorization"] = f"Bearer {self.config.write_key}"
        else:
            query["read_key"] = self.config.read_key

        url = self._url(path, upload=upload)
        logger.debug("Cosmic request: %s %s", method, path)
        try:
            resp = await self._http.request(
                method,
                url,
                params=query or None,
                json=json,
                data=data,
                files=files,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise CosmicAPIError(f"Request to Cosmic API failed: {exc}") from exc

        if resp.is_error:
            message = _error_message(resp)
            logger.debug(
                "Cosmic request failed: %s %s -> %d %s", method, path, resp.status_code, message
            )
            raise CosmicAPIError(message, status_code=resp.status_code)

        if not resp.content:
            return {}
        try:
            body = resp.json()
        except ValueError as exc:
            raise CosmicAPIError(
                "Cosmic API returned a non-JSON response", status_code=resp.status_code
            ) from exc
        return body if isinstance(body, dict) else {"data": body}

    async def fetch_remote(self, url: str) -> tuple[bytes, str, str | None]:
        """Download a remote file, returning ``(content, filename, content_type)``.

        Only ``http``/``https`` URLs are fetched, and the body is streamed so a
        download larger than ``max_remote_bytes`` is abandoned early.
        """
        if urlparse(url).scheme not in ("http", "https"):
            raise CosmicAPIError(f"Failed to fetch media from {url}: unsupported URL scheme")

        limit = self.max_remote_bytes
        too_large = f"Failed to fetch media from {url}: file exceeds {limit} bytes"
        try:
            async with self._http.stream("GET", url, follow_redirects=True) as resp:
                resp.raise_for_status()
                declared = resp.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > limit:
                    raise CosmicAPIError(too_large, status_code=413)

                chunks: list[bytes] = []
                received = 0
                async for chunk in resp.aiter_bytes():
                    received += len(chunk)
                    if received > limit:
                        raise CosmicAPIError(too_large, status_code=413)
                    chunks.append(chunk)
                content_type = resp.headers.get("content-type")
        except httpx.HTTPStatusError as exc:
            raise CosmicAPIError(
                f"Failed to fetch media from {url}: {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise CosmicAPIError(f"Failed to fetch media from {url}: {exc}") from exc

        filename = os.path.basename(urlparse(url).path) or "upload"
        if content_type:
            content_type = content_type.split(";")[0].strip()
        return b"".join(chunks), filename, content_type

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> CosmicClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


# ---------------------------------------------------------------------------
# Process-wide accessor
# ---------------------------------------------------------------------------

_client: CosmicClient | None = None


def get_client() -> CosmicClient:
    """Return the process-wide client, creating it from the environment once."""
    global _client
    if _client is None:
        _client = CosmicClient(load_config())
    return _client


def reset_client() -> None:
    """Forget the memoized client (test support)."""
    global _client
    _client = None


def has_write_access(client: CosmicClient | None = None) -> bool:
    """Whether mutating operations are allowed.

    With a client, its captured configuration decides; otherwise the
    ``COSMIC_WRITE_KEY`` environment variable does.
    """
    if client is not None:
        return bool(getattr(client, "has_write_access", False))
    return bool(os.environ.get(ENV_WRITE_KEY, "").strip())


def require_write_access(client: CosmicClient | None = None) -> None:
    """Raise :class:`WriteAccessError` unless a write key is configured."""
    if not has_write_access(client):
        raise WriteAccessError()
