"""Chunk transport: moving one encrypted chunk to or from the object store.

This module provides:
- UploadStrategy and its two implementations, DirectUploadStrategy
  (presigned PUT with byte-level progress) and ProxyUploadStrategy
  (server-mediated write, progress reported as 0 then 1)
- ChunkTransport: tries the upload strategies in order, and fetches
  chunks through broker-issued read URLs
- ChunkStream: incremental reader over one fetched chunk
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager

import httpx

from sharrr.client.api import APIError, BrokerClient
from sharrr.core.crypto import hash_key
from sharrr.core.errors import (
    ChunkUnavailable,
    ChunkUploadFailed,
    DirectUploadError,
    PresignedUrlError,
    TransferError,
)
from sharrr.core.types import Chunk

logger = logging.getLogger(__name__)

# Size of the slices handed to the HTTP layer on the direct path
UPLOAD_PART_SIZE = 64 * 1024

ChunkProgressCallback = Callable[[float], None]


def _ignore_progress(_: float) -> None:
    pass


class _ProgressBody:
    """Replayable request body that reports how much has been sent.

    Every ``__aiter__`` call starts a fresh pass over the data, so the
    HTTP retry layer can resend it.
    """

    def __init__(self, data: bytes, on_progress: ChunkProgressCallback, part_size: int) -> None:
        self._data = data
        self._on_progress = on_progress
        self._part_size = part_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        total = len(self._data)
        sent = 0
        for offset in range(0, total, self._part_size):
            part = self._data[offset : offset + self._part_size]
            yield part
            sent += len(part)
            self._on_progress(sent / total)


class UploadStrategy(ABC):
    """One way of getting an encrypted chunk into the object store."""

    name: str = "strategy"

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        key_hash: str,
        data: bytes,
        on_progress: ChunkProgressCallback,
    ) -> None:
        """Store ``data`` under ``key_hash`` in ``bucket``.

        Raises:
            TransferError: If this path failed.
        """


class DirectUploadStrategy(UploadStrategy):
    """PUT the chunk straight to a presigned object-store URL."""

    name = "direct"

    def __init__(self, client: BrokerClient, part_size: int = UPLOAD_PART_SIZE) -> None:
        self._client = client
        self._part_size = part_size

    async def upload(
        self,
        bucket: str,
        key_hash: str,
        data: bytes,
        on_progress: ChunkProgressCallback,
    ) -> None:
        url = await self._client.issue_upload_url(key_hash, bucket)
        try:
            await self._client.put_object(
                url,
                _ProgressBody(data, on_progress, self._part_size),
                content_length=len(data),
            )
        except (APIError, httpx.HTTPError) as e:
            raise DirectUploadError(f"Direct upload of {key_hash[:8]}... failed: {e}") from e
        on_progress(1.0)


class ProxyUploadStrategy(UploadStrategy):
    """Submit the chunk to the server, which writes it to storage."""

    name = "proxy"

    def __init__(self, client: BrokerClient, encoding: str = "multipart") -> None:
        if encoding not in ("multipart", "json"):
            raise ValueError(f"Unknown proxy encoding: {encoding}")
        self._client = client
        self._encoding = encoding

    async def upload(
        self,
        bucket: str,
        key_hash: str,
        data: bytes,
        on_progress: ChunkProgressCallback,
    ) -> None:
        on_progress(0.0)
        try:
            if self._encoding == "json":
                await self._client.proxy_upload_json(key_hash, bucket, data)
            else:
                await self._client.proxy_upload(key_hash, bucket, data)
        except (APIError, httpx.HTTPError) as e:
            raise TransferError(f"Proxy upload of {key_hash[:8]}... failed: {e}") from e
        on_progress(1.0)


class ChunkStream:
    """Incremental reader over one fetched encrypted chunk.

    ``first`` is the already-received head of the body; the rest is read
    from ``rest`` on demand.
    """

    def __init__(self, first: bytes, rest: AsyncIterator[bytes]) -> None:
        self._first = first
        self._rest = rest

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the encrypted bytes as they arrive."""
        yield self._first
        async for data in self._rest:
            if data:
                yield data


async def _first_part(parts: AsyncIterator[bytes]) -> bytes:
    async for data in parts:
        if data:
            return data
    return b""


class ChunkTransport:
    """Moves single encrypted chunks between this process and storage.

    Uploads try each strategy in order; a failure of any strategy but the
    last is logged and swallowed, a failure of the last one is fatal.
    """

    def __init__(
        self,
        client: BrokerClient,
        strategies: Sequence[UploadStrategy] | None = None,
    ) -> None:
        self._client = client
        if strategies is None:
            strategies = (DirectUploadStrategy(client), ProxyUploadStrategy(client))
        if not strategies:
            raise ValueError("At least one upload strategy is required")
        self._strategies = tuple(strategies)

    @property
    def strategies(self) -> tuple[UploadStrategy, ...]:
        return self._strategies

    async def upload_chunk(
        self,
        bucket: str,
        data: bytes,
        key_hash: str,
        on_progress: ChunkProgressCallback | None = None,
        index: int | None = None,
    ) -> None:
        """Upload one encrypted chunk.

        Args:
            bucket: Storage namespace.
            data: Encrypted chunk bytes.
            key_hash: Object-store key (hash of the chunk key).
            on_progress: Receives fractional progress in ``[0, 1]``.
            index: Chunk index, used for error context.

        Raises:
            ChunkUploadFailed: If every strategy failed.
        """
        progress = on_progress or _ignore_progress
        progress(0.0)

        last = len(self._strategies) - 1
        for position, strategy in enumerate(self._strategies):
            try:
                await strategy.upload(bucket, key_hash, data, progress)
            except Exception as e:
                if position < last:
                    logger.warning(
                        f"{strategy.name} upload of chunk {key_hash[:8]}... failed, "
                        f"falling back to {self._strategies[position + 1].name}: {e}"
                    )
                    continue
                logger.error(f"{strategy.name} upload of chunk {key_hash[:8]}... failed: {e}")
                raise ChunkUploadFailed(
                    f"Failed to upload file chunk through {strategy.name}: {e}",
                    index=index,
                    key_hash=key_hash,
                ) from e
            logger.debug(f"Uploaded chunk {key_hash[:8]}... via {strategy.name}")
            return

    @asynccontextmanager
    async def fetch_chunk(
        self, alias: str, bucket: str, chunk: Chunk
    ) -> AsyncIterator[ChunkStream]:
        """Open a stream over one encrypted chunk.

        The chunk's signature is forwarded to the broker, which performs
        the authorization check.

        Raises:
            AuthorizationError: If the broker refused the credentials.
            ChunkUnavailable: If the URL could not be issued or the object
                could not be read.
        """
        key_hash = hash_key(chunk.key)
        try:
            url = await self._client.issue_download_url(
                chunk.key, alias, bucket, key_hash, chunk.signature
            )
        except PresignedUrlError as e:
            logger.warning(f"No download URL for chunk {key_hash[:8]}...: {e}")
            raise ChunkUnavailable() from e

        try:
            async with self._client.stream_object(url) as response:
                if not response.is_success:
                    logger.warning(
                        f"Fetching chunk {key_hash[:8]}... returned HTTP {response.status_code}"
                    )
                    raise ChunkUnavailable()
                parts = response.aiter_bytes()
                first = await _first_part(parts)
                if not first:
                    logger.warning(f"Chunk {key_hash[:8]}... has an empty body")
                    raise ChunkUnavailable()
                yield ChunkStream(first, parts)
        except httpx.HTTPError as e:
            raise ChunkUnavailable() from e
