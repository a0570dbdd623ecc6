"""CLI for the Cosmic MCP server: serve, inspect the tool catalog and check config."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from cosmic_mcp.client import CosmicAPIError, CosmicClient
from cosmic_mcp.config import ConfigError, CosmicConfig, load_config
from cosmic_mcp.core.logging import configure_logging
from cosmic_mcp.core.telemetry import init_telemetry
from cosmic_mcp.server import SERVER_VERSION, serve_stdio
from cosmic_mcp.tools import ToolRegistry

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group(invoke_without_command=True)
@click.version_option(version=SERVER_VERSION)
@click.option(
    "--log-level",
    envvar="COSMIC_MCP_LOG_LEVEL",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Log level for stderr output",
)
@click.option(
    "--log-format",
    envvar="COSMIC_MCP_LOG_FORMAT",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Log output format",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write JSON logs to this file",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_format: str, log_file: Path | None) -> None:
    """Cosmic CMS MCP server. Runs ``serve`` when no command is given."""
    ctx.ensure_object(dict)
    ctx.obj.update(log_level=log_level, log_format=log_format, log_file=log_file)
    configure_logging(level=log_level, fmt=log_format, log_file=log_file)

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


def _load_config_or_exit(ctx: click.Context) -> CosmicConfig:
    """Load bucket configuration, exiting with status 1 when it is invalid.

    On success logging is reconfigured with the bucket slug and the
    credential values to redact.
    """
    try:
        config = load_config()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    opts = ctx.obj or {}
    configure_logging(
        level=opts.get("log_level", "INFO"),
        fmt=opts.get("log_format", "text"),
        log_file=opts.get("log_file"),
        bucket_slug=config.bucket_slug,
        secrets=config.secrets(),
    )
    return config


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the MCP server over stdio (the default command)."""
    config = _load_config_or_exit(ctx)
    logger.info("Cosmic MCP Server starting...")
    logger.info("Connected to bucket: %s", config.bucket_slug)
    if not config.has_write_access:
        logger.warning("Write key not provided - write operations will be disabled")

    init_telemetry()
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


async def _serve(config: CosmicConfig) -> None:
    await serve_stdio(CosmicClient(config))


@cli.command()
@click.option("--names", is_flag=True, help="Print only tool names, one per line")
def tools(names: bool) -> None:
    """Print the tool catalog advertised to MCP clients."""
    registry = ToolRegistry()
    if names:
        for name in registry.names():
            click.echo(name)
        return

    catalog = [
        tool.model_dump(mode="json", by_alias=True, exclude_none=True)
        for tool in registry.descriptors()
    ]
    click.echo(json.dumps(catalog, indent=2))


@cli.command()
@click.option("--ping", is_flag=True, help="Also list object types to verify the read key")
@click.pass_context
def check(ctx: click.Context, ping: bool) -> None:
    """Validate the Cosmic configuration in the environment."""
    config = _load_config_or_exit(ctx)
    click.echo(f"Bucket: {config.bucket_slug}")
    click.echo(f"API URL: {config.api_url}")
    click.echo(f"Write access: {'enabled' if config.has_write_access else 'disabled'}")

    if ping:
        try:
            count = asyncio.run(_ping(config))
        except CosmicAPIError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
        click.echo(f"Object types: {count}")


async def _ping(config: CosmicConfig) -> int:
    async with CosmicClient(config) as client:
        response = await client.object_types.find()
    return len(response.get("object_types") or [])
