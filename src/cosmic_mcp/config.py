"""Cosmic bucket configuration loaded from the process environment.

The adapter needs a bucket slug and a read key to start.  The write key is
optional; without it every mutating tool answers with an access error instead
of reaching the network.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

ENV_BUCKET_SLUG = "COSMIC_BUCKET_SLUG"
ENV_READ_KEY = "COSMIC_READ_KEY"
ENV_WRITE_KEY = "COSMIC_WRITE_KEY"
ENV_API_URL = "COSMIC_API_URL"
ENV_UPLOAD_URL = "COSMIC_UPLOAD_URL"
ENV_TIMEOUT = "COSMIC_TIMEOUT"

DEFAULT_API_URL = "https://api.cosmicjs.com/v3"
DEFAULT_UPLOAD_URL = "https://workers.cosmicjs.com/v3"
DEFAULT_TIMEOUT_SECONDS = 30.0


class ConfigError(Exception):
    """Raised when required Cosmic configuration is missing or malformed."""


def _mask(secret: str | None) -> str | None:
    if not secret:
        return secret
    return f"{secret[:4]}..." if len(secret) > 8 else "***"


@dataclass(frozen=True)
class CosmicConfig:
    """Validated connection settings for a single Cosmic bucket."""

    bucket_slug: str
    read_key: str
    write_key: str | None = None
    api_url: str = DEFAULT_API_URL
    upload_url: str = DEFAULT_UPLOAD_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def has_write_access(self) -> bool:
        return bool(self.write_key)

    def secrets(self) -> list[str]:
        """Return the credential values that must never appear in logs."""
        return [s for s in (self.read_key, self.write_key) if s]

    def __repr__(self) -> str:
        return (
            f"CosmicConfig(bucket_slug={self.bucket_slug!r}, "
            f"read_key={_mask(self.read_key)!r}, write_key={_mask(self.write_key)!r}, "
            f"api_url={self.api_url!r}, upload_url={self.upload_url!r}, "
            f"timeout={self.timeout!r})"
        )


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name, "").strip()
    if not value:
        raise ConfigError(f"{name} environment variable is required")
    return value


def load_config(environ: Mapping[str, str] | None = None) -> CosmicConfig:
    """Build a :class:`CosmicConfig` from environment variables.

    Parameters
    ----------
    environ:
        Mapping to read from.  Defaults to ``os.environ``.

    Raises
    ------
    ConfigError
        If ``COSMIC_BUCKET_SLUG`` or ``COSMIC_READ_KEY`` is missing or empty,
        or ``COSMIC_TIMEOUT`` is not a positive number.
    """
    env = os.environ if environ is None else environ

    bucket_slug = _require(env, ENV_BUCKET_SLUG)
    read_key = _require(env, ENV_READ_KEY)
    write_key = env.get(ENV_WRITE_KEY, "").strip() or None

    raw_timeout = env.get(ENV_TIMEOUT, "").strip()
    timeout = DEFAULT_TIMEOUT_SECONDS
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigError(
                f"{ENV_TIMEOUT} must be a number of seconds, got {raw_timeout!r}"
            ) from None
        if timeout <= 0:
            raise ConfigError(f"{ENV_TIMEOUT} must be positive, got {raw_timeout!r}")

    return CosmicConfig(
        bucket_slug=bucket_slug,
        read_key=read_key,
        write_key=write_key,
        api_url=(env.get(ENV_API_URL, "").strip() or DEFAULT_API_URL).rstrip("/"),
        upload_url=(env.get(ENV_UPLOAD_URL, "").strip() or DEFAULT_UPLOAD_URL).rstrip("/"),
        timeout=timeout,
    )
