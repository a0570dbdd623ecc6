"""Tests for environment-driven Cosmic configuration."""

from __future__ import annotations

import dataclasses

import pytest

from cosmic_mcp.config import (
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_UPLOAD_URL,
    ConfigError,
    CosmicConfig,
    load_config,
)

pytestmark = pytest.mark.unit

BASE_ENV = {"COSMIC_BUCKET_SLUG": "my-bucket", "COSMIC_READ_KEY": "rk-1234567890"}


class TestLoadConfig:
    def test_minimal_environment(self):
        config = load_config(BASE_ENV)
        assert config.bucket_slug == "my-bucket"
        assert config.read_key == "rk-1234567890"
        assert config.write_key is None
        assert config.api_url == DEFAULT_API_URL
        assert config.upload_url == DEFAULT_UPLOAD_URL
        assert config.timeout == DEFAULT_TIMEOUT_SECONDS
        assert config.has_write_access is False

    def test_write_key_enables_write_access(self):
        config = load_config({**BASE_ENV, "COSMIC_WRITE_KEY": "wk-secret"})
        assert config.write_key == "wk-secret"
        assert config.has_write_access is True

    def test_blank_write_key_is_absent(self):
        config = load_config({**BASE_ENV, "COSMIC_WRITE_KEY": "   "})
        assert config.write_key is None
        assert config.has_write_access is False

    @pytest.mark.parametrize("missing", ["COSMIC_BUCKET_SLUG", "COSMIC_READ_KEY"])
    def test_missing_required_variable(self, missing):
        env = {k: v for k, v in BASE_ENV.items() if k != missing}
        with pytest.raises(ConfigError, match=f"{missing} environment variable is required"):
            load_config(env)

    @pytest.mark.parametrize("missing", ["COSMIC_BUCKET_SLUG", "COSMIC_READ_KEY"])
    def test_empty_required_variable_counts_as_missing(self, missing):
        with pytest.raises(ConfigError, match=missing):
            load_config({**BASE_ENV, missing: ""})

    def test_url_overrides_strip_trailing_slash(self):
        config = load_config(
            {
                **BASE_ENV,
                "COSMIC_API_URL": "http://localhost:8080/v3/",
                "COSMIC_UPLOAD_URL": "http://localhost:8081/v3/",
            }
        )
        assert config.api_url == "http://localhost:8080/v3"
        assert config.upload_url == "http://localhost:8081/v3"

    def test_timeout_override(self):
        assert load_config({**BASE_ENV, "COSMIC_TIMEOUT": "12.5"}).timeout == 12.5

    @pytest.mark.parametrize("raw", ["soon", "0", "-3"])
    def test_invalid_timeout(self, raw):
        with pytest.raises(ConfigError, match="COSMIC_TIMEOUT"):
            load_config({**BASE_ENV, "COSMIC_TIMEOUT": raw})

    def test_reads_process_environment_by_default(self, cosmic_env):
        config = load_config()
        assert config.bucket_slug == "env-bucket"
        assert config.read_key == "env-read-key"


class TestCosmicConfig:
    def test_frozen(self):
        config = CosmicConfig(bucket_slug="b", read_key="r")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.bucket_slug = "other"  # type: ignore[misc]

    def test_repr_masks_credentials(self):
        config = CosmicConfig(
            bucket_slug="b", read_key="read-key-long-value", write_key="write-key-long-value"
        )
        text = repr(config)
        assert "read-key-long-value" not in text
        assert "write-key-long-value" not in text
        assert "read..." in text
        assert "bucket_slug='b'" in text

    def test_repr_masks_short_credentials(self):
        text = repr(CosmicConfig(bucket_slug="b", read_key="abc"))
        assert "'abc'" not in text
        assert "***" in text

    def test_secrets_lists_present_keys(self):
        assert CosmicConfig(bucket_slug="b", read_key="r").secrets() == ["r"]
        assert CosmicConfig(bucket_slug="b", read_key="r", write_key="w").secrets() == ["r", "w"]
