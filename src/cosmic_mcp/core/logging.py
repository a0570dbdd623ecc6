"""Structured logging for the Cosmic MCP server.

Uses structlog's ProcessorFormatter to render all existing
``logging.getLogger(__name__)`` call sites.  Zero changes needed at call sites.

Two output formats:
- ``text``: Colored, human-readable console output (dev default)
- ``json``: Machine-parseable JSON lines (log aggregation)

Output always goes to **stderr**: stdout carries the MCP stdio transport and
any stray write there corrupts the protocol stream.

The active bucket slug and OTel trace context are injected automatically via
processors that read from a ContextVar and the current OTel span.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterable
from contextvars import ContextVar
from pathlib import Path

import structlog
from opentelemetry import trace

# ---------------------------------------------------------------------------
# Bucket context (asyncio-safe via ContextVar)
# ---------------------------------------------------------------------------

_bucket_context: ContextVar[str | None] = ContextVar("cosmic_bucket", default=None)


def set_bucket_context(slug: str) -> None:
    """Set the bucket slug for the current async context."""
    _bucket_context.set(slug)


def get_bucket_context() -> str | None:
    """Get the bucket slug for the current async context."""
    return _bucket_context.get()


# ---------------------------------------------------------------------------
# Structlog processors
# ---------------------------------------------------------------------------


def add_bucket_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Inject ``bucket`` key from the ContextVar into the event dict."""
    event_dict["bucket"] = get_bucket_context()
    return event_dict


def add_otel_context(
    logger: logging.Logger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict,
) -> dict:
    """Inject ``trace_id`` and ``span_id`` from the current OTel span."""
    span = trace.get_current_span()
    ctx = span.get_span_context()
    if ctx and ctx.trace_id:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    else:
        event_dict["trace_id"] = "0" * 32
        event_dict["span_id"] = "0" * 16
    return event_dict


# ---------------------------------------------------------------------------
# Credential redaction
# ---------------------------------------------------------------------------

_REDACTED = "[REDACTED]"
_REDACTION_PATTERNS = (
    re.compile(r"(read_key=)[^&\s\"']+"),
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+"),
)


class CredentialRedactionFilter(logging.Filter):
    """Scrub Cosmic keys out of log records before they are rendered.

    Catches ``read_key=...`` query parameters and Bearer tokens, plus any
    literal secret values registered via ``secrets``.  Never drops a record.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def _scrub(self, text: str) -> str:
        for pattern in _REDACTION_PATTERNS:
            text = pattern.sub(lambda m: m.group(1) + _REDACTED, text)
        for secret in self._secrets:
            text = text.replace(secret, _REDACTED)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:
            return True
        scrubbed = self._scrub(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = ()
        return True


# ---------------------------------------------------------------------------
# Noise suppression
# ---------------------------------------------------------------------------

_NOISE_LOGGERS = (
    "mcp.server.lowlevel.server",
    "httpx",
    "httpcore",
)


def _build_processors(
    time_fmt: str,
) -> list[structlog.types.Processor]:
    """Build the pre-chain processor list with the given timestamp format."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_fmt),
        add_bucket_context,
        add_otel_context,
        structlog.stdlib.ExtraAdder(),
    ]


def _make_file_handler(path: Path, processors: list) -> logging.FileHandler:
    """Create a JSON file handler at *path*."""
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=processors,
    )
    handler = logging.FileHandler(path)
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    return handler


# ---------------------------------------------------------------------------
# configure_logging()
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    log_file: Path | None = None,
    bucket_slug: str | None = None,
    secrets: Iterable[str] = (),
) -> None:
    """Configure structured logging for the process.

    Parameters
    ----------
    level:
        Root log level (e.g. "DEBUG", "INFO", "WARNING").
    fmt:
        Console format: ``"text"`` for colored console, ``"json"`` for JSON lines.
    log_file:
        Optional path for an additional JSON log file.  Parent directories
        are created.
    bucket_slug:
        Bucket identity, set in the ContextVar.
    secrets:
        Credential values to scrub from every record.
    """
    if bucket_slug:
        set_bucket_context(bucket_slug)

    if fmt == "json":
        console_processors = _build_processors(time_fmt="iso")
        renderer = structlog.processors.JSONRenderer()
    else:
        # Console: compact HH:MM:SS, no microseconds
        console_processors = _build_processors(time_fmt="%H:%M:%S")
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=console_processors,
    )

    # -- Console handler (stderr) --
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    # Remove existing handlers/filters to avoid duplicates on reconfiguration
    root.handlers.clear()
    for existing in [f for f in root.filters if isinstance(f, CredentialRedactionFilter)]:
        root.removeFilter(existing)
    root.addHandler(console_handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    redaction = CredentialRedactionFilter(secrets)
    root.addFilter(redaction)
    # Root-logger filters do not apply to records propagated from child
    # loggers, so the handlers carry the filter as well.
    console_handler.addFilter(redaction)

    # Suppress noisy third-party loggers on console
    for name in _NOISE_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = _make_file_handler(log_file, _build_processors(time_fmt="iso"))
        file_handler.addFilter(redaction)
        root.addHandler(file_handler)

    # Configure structlog itself (for direct structlog.get_logger() usage)
    structlog.configure(
        processors=[
            *console_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
