"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from sharrr.core.config import GB, MB, ServerConfig, TransferConfig


class TestServerConfig:
    """Tests for ServerConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with defaults."""
        config = ServerConfig(server_url="https://example.com")
        assert config.server_url == "https://example.com"
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_strips_trailing_slash(self) -> None:
        """Should normalize the server URL."""
        config = ServerConfig(server_url="https://example.com/")
        assert config.server_url == "https://example.com"


class TestTransferConfig:
    """Tests for TransferConfig class."""

    def test_defaults(self) -> None:
        """Defaults match the non-production environment."""
        config = TransferConfig()
        assert config.chunk_size == 1 * MB
        assert config.max_file_size == 1 * GB
        assert config.concurrency_limit == 3

    def test_production(self) -> None:
        """Production uses 3 MB chunks and a 10 GB limit."""
        config = TransferConfig.for_environment("production")
        assert config.chunk_size == 3_000_000
        assert config.max_file_size == 10_000_000_000

    def test_other_environment(self) -> None:
        """Any other environment uses 1 MB chunks and a 1 GB limit."""
        config = TransferConfig.for_environment("staging")
        assert config.chunk_size == 1_000_000
        assert config.max_file_size == 1_000_000_000

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables override the environment defaults."""
        monkeypatch.setenv("SHARRR_ENV", "production")
        monkeypatch.setenv("SHARRR_CHUNK_SIZE", "500")
        monkeypatch.delenv("SHARRR_MAX_FILE_SIZE", raising=False)
        config = TransferConfig.from_env()
        assert config.chunk_size == 500
        assert config.max_file_size == 10 * GB

    def test_from_env_rejects_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Invalid overrides are rejected."""
        monkeypatch.setenv("SHARRR_CHUNK_SIZE", "0")
        with pytest.raises(ValueError):
            TransferConfig.from_env()

    def test_invalid_values(self) -> None:
        """Non-positive settings are rejected."""
        with pytest.raises(ValueError):
            TransferConfig(chunk_size=0)
        with pytest.raises(ValueError):
            TransferConfig(max_file_size=-1)
        with pytest.raises(ValueError):
            TransferConfig(concurrency_limit=0)
