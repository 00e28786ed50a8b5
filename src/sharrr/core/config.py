"""Shared configuration classes for sharrr.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

MB = 10**6  # 1000000 bytes
GB = 10**9

PRODUCTION = "production"
DEFAULT_CONCURRENCY_LIMIT = 3


def get_chunk_size(environment: str) -> int:
    """Chunk size for an environment: 3 MB in production, 1 MB elsewhere."""
    return (3 if environment == PRODUCTION else 1) * MB


def get_max_file_size(environment: str) -> int:
    """Maximum file size for an environment: 10 GB in production, 1 GB elsewhere."""
    return (10 if environment == PRODUCTION else 1) * GB


@dataclass
class TransferConfig:
    """Sizing and concurrency settings for upload and download jobs.

    Attributes:
        chunk_size: Plaintext bytes per chunk.
        max_file_size: Files larger than this are rejected before planning.
        concurrency_limit: Upper bound on concurrent chunk uploads.
    """

    chunk_size: int = 1 * MB
    max_file_size: int = 1 * GB
    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_file_size <= 0:
            raise ValueError(f"max_file_size must be positive, got {self.max_file_size}")
        if self.concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {self.concurrency_limit}")

    @classmethod
    def for_environment(cls, environment: str) -> TransferConfig:
        """Build the default configuration for an environment name."""
        return cls(
            chunk_size=get_chunk_size(environment),
            max_file_size=get_max_file_size(environment),
        )

    @classmethod
    def from_env(cls) -> TransferConfig:
        """Build configuration from SHARRR_* environment variables."""
        config = cls.for_environment(os.environ.get("SHARRR_ENV", "development"))
        if chunk_size := os.environ.get("SHARRR_CHUNK_SIZE"):
            config.chunk_size = int(chunk_size)
        if max_file_size := os.environ.get("SHARRR_MAX_FILE_SIZE"):
            config.max_file_size = int(max_file_size)
        config.__post_init__()
        return config


@dataclass
class ServerConfig:
    """Configuration for connecting to a sharrr server.

    Attributes:
        server_url: Base URL of the server (e.g., "https://share.example.com").
        timeout: Request/connection timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")
