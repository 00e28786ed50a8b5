"""File download with decryption and reassembly.

This module provides:
- FileDownloader: fetches chunks strictly in order, decrypts them and
  exposes the plaintext as one lazily produced byte sequence
- ByteSink / FileSink: push-style outputs for the reassembled plaintext

Chunks are fetched one at a time. Chunk keys are random, so the stored
order is the only way to reassemble the file.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from sharrr.client.progress import CancelCheck, ProgressCallback
from sharrr.core.crypto import decrypt_chunk, encrypted_size
from sharrr.core.errors import DecryptionError, TransferCancelledError

if TYPE_CHECKING:
    from sharrr.client.transport import ChunkTransport
    from sharrr.core.types import SecretFile

logger = logging.getLogger(__name__)


class ByteSink(ABC):
    """Destination for reassembled plaintext."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Append bytes."""

    async def close(self) -> None:
        """Called once after the last write of a successful download."""

    async def abort(self) -> None:
        """Called instead of close() when the download failed."""


class FileSink(ByteSink):
    """Write to a temporary file and atomically rename it on success.

    No partial file is left at the target path if the download fails.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        self._file: BinaryIO | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _open(self) -> BinaryIO:
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._tmp_path, "wb")
        return self._file

    async def write(self, data: bytes) -> None:
        await asyncio.to_thread(self._open().write, data)

    async def close(self) -> None:
        self._open().close()
        self._file = None
        # Atomic rename: tmp -> final path
        self._tmp_path.replace(self._path)

    async def abort(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        if self._tmp_path.exists():
            with contextlib.suppress(OSError):
                self._tmp_path.unlink()


class FileDownloader:
    """Handles file download with decryption and reassembly."""

    def __init__(
        self,
        transport: ChunkTransport,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the downloader.

        Args:
            transport: Chunk transport used to fetch chunks.
            progress_callback: Also receives every progress update written
                to the SecretFile.
        """
        self._transport = transport
        self._progress_callback = progress_callback

    def _set_progress(self, secret_file: SecretFile, value: float) -> None:
        value = min(value, 1.0)
        if value < secret_file.progress:
            return
        secret_file.progress = value
        if self._progress_callback:
            self._progress_callback(value)

    async def iter_plaintext(
        self,
        secret_file: SecretFile,
        cancel_check: CancelCheck | None = None,
    ) -> AsyncIterator[bytes]:
        """Yield the decrypted file, one chunk at a time, in stored order.

        ``secret_file.progress`` is updated after every network read, so it
        moves while a large chunk is still arriving. Progress is weighted by
        plaintext chunk sizes and ends at exactly 1.0.

        Raises:
            AuthorizationError: If the broker refused a chunk.
            ChunkUnavailable: If a chunk could not be fetched.
            DecryptionError: If a chunk failed authentication.
            TransferCancelledError: If cancel_check returned True.
        """
        chunks = secret_file.chunks
        total_size = sum(chunk.size for chunk in chunks)
        if not chunks or total_size <= 0:
            raise ValueError(f"{secret_file.alias} has no chunks to download")

        logger.info(f"Downloading {secret_file.alias}: {len(chunks)} chunks, {total_size} bytes")

        secret_file.progress = 0.0
        self._set_progress(secret_file, 0.0)
        done = 0

        for index, chunk in enumerate(chunks):
            if cancel_check and cancel_check():
                logger.info(f"Download cancelled at chunk {index + 1}/{len(chunks)}")
                raise TransferCancelledError(
                    f"Download of {secret_file.alias} cancelled at chunk {index + 1}/{len(chunks)}"
                )

            expected = encrypted_size(chunk.size)
            encrypted = bytearray()
            async with self._transport.fetch_chunk(
                secret_file.alias, secret_file.bucket, chunk
            ) as stream:
                async for data in stream.iter_bytes():
                    encrypted += data
                    fraction = min(len(encrypted), expected) / expected
                    self._set_progress(secret_file, (done + chunk.size * fraction) / total_size)

            try:
                plaintext = decrypt_chunk(bytes(encrypted), secret_file.decryption_key)
            except DecryptionError:
                logger.error(
                    f"Chunk {index + 1}/{len(chunks)} of {secret_file.alias} failed to decrypt"
                )
                raise

            done += chunk.size
            self._set_progress(secret_file, done / total_size)
            logger.debug(f"Downloaded chunk {index + 1}/{len(chunks)}")

            yield plaintext

        logger.info(f"Downloaded {secret_file.alias}: {len(chunks)} chunks")

    async def download_to(
        self,
        secret_file: SecretFile,
        sink: ByteSink,
        cancel_check: CancelCheck | None = None,
    ) -> int:
        """Push the decrypted file into ``sink``.

        Returns:
            Number of plaintext bytes written.
        """
        written = 0
        try:
            async for data in self.iter_plaintext(secret_file, cancel_check):
                await sink.write(data)
                written += len(data)
        except BaseException:
            await sink.abort()
            raise
        await sink.close()
        return written
