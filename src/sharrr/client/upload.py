"""File upload with chunking and encryption.

This module provides:
- FileUploader: splits a file into chunks, encrypts and signs each one and
  uploads them with a bounded pool of concurrent workers
- run_bounded: order-preserving bounded task pool
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from sharrr.client.progress import CancelCheck, ProgressCallback, ProgressTracker
from sharrr.core.chunking import FileSource, chunk_range, plan_chunks
from sharrr.core.config import TransferConfig
from sharrr.core.crypto import encrypt_chunk, hash_key, sign_message
from sharrr.core.errors import EmptyFileError, FileTooLargeError, TransferCancelledError
from sharrr.core.types import Chunk, FileMeta, FileReference, UploadResult

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey

    from sharrr.client.transport import ChunkTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_bounded(
    concurrency: int,
    count: int,
    worker: Callable[[int], Awaitable[T]],
) -> list[T]:
    """Run ``worker(i)`` for every ``i`` in ``range(count)``.

    At most ``concurrency`` workers run at once. Results are returned in
    index order, whatever order the workers finish in. The first failure
    cancels the remaining workers and is re-raised.
    """
    results: list[T | None] = [None] * count
    indices = iter(range(count))

    async def drain() -> None:
        for index in indices:
            results[index] = await worker(index)

    tasks = [asyncio.create_task(drain()) for _ in range(min(concurrency, count))]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return results  # type: ignore[return-value]


class FileUploader:
    """Handles file upload with chunking and encryption.

    A failed job is not resumable: chunks uploaded before the failure are
    left in storage and the caller restarts from scratch.
    """

    def __init__(
        self,
        transport: ChunkTransport,
        config: TransferConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            transport: Chunk transport used by every worker.
            config: Chunk size, size limit and concurrency limit.
            progress_callback: Receives overall progress in ``[0, 1]``.
        """
        self._transport = transport
        self._config = config or TransferConfig()
        self._progress_callback = progress_callback

    def validate(self, source: FileSource) -> int:
        """Check that a file can be shared and return its chunk count.

        Raises:
            EmptyFileError: If the file is empty.
            FileTooLargeError: If the file exceeds the configured maximum.
        """
        size = source.size
        if size == 0:
            raise EmptyFileError()
        if size > self._config.max_file_size:
            raise FileTooLargeError(size, self._config.max_file_size)
        return plan_chunks(size, self._config.chunk_size)

    async def upload_file(
        self,
        source: FileSource,
        bucket: str,
        master_key: bytes,
        private_key: EllipticCurvePrivateKey,
        cancel_check: CancelCheck | None = None,
    ) -> UploadResult:
        """Upload a file and describe the result.

        Returns:
            UploadResult with the file metadata and the ordered chunk list.
        """
        chunks = await self.upload_chunks(source, bucket, master_key, private_key, cancel_check)
        meta = FileMeta(
            name=source.name,
            size=source.size,
            mime_type=source.mime_type,
            is_single_chunk=len(chunks) == 1,
        )
        return UploadResult(meta=meta, reference=FileReference(bucket=bucket, chunks=tuple(chunks)))

    async def upload_chunks(
        self,
        source: FileSource,
        bucket: str,
        master_key: bytes,
        private_key: EllipticCurvePrivateKey,
        cancel_check: CancelCheck | None = None,
    ) -> list[Chunk]:
        """Encrypt, sign and upload every chunk of ``source``.

        Args:
            source: Plaintext file.
            bucket: Storage namespace.
            master_key: 32-byte AES key.
            private_key: Signing key for chunk keys.
            cancel_check: Consulted before each chunk starts.

        Returns:
            Chunk descriptors ordered by chunk index.

        Raises:
            EmptyFileError: If the file is empty (no network call is made).
            FileTooLargeError: If the file exceeds the configured maximum.
            ChunkUploadFailed: If a chunk could not be uploaded by any path.
            TransferCancelledError: If cancel_check returned True.
        """
        count = self.validate(source)
        size = source.size
        chunk_size = self._config.chunk_size
        concurrency = min(self._config.concurrency_limit, count)

        logger.info(
            f"Uploading {source.name}: {size} bytes in {count} chunks "
            f"({concurrency} concurrent)"
        )

        tracker = ProgressTracker(count, self._progress_callback)
        tracker.start()

        async def upload_one(index: int) -> Chunk:
            if cancel_check and cancel_check():
                logger.info(f"Upload cancelled at chunk {index + 1}/{count}")
                raise TransferCancelledError(
                    f"Upload of {source.name} cancelled at chunk {index + 1}/{count}"
                )

            byte_range = chunk_range(index, size, chunk_size)
            plaintext = await asyncio.to_thread(source.read_range, byte_range.start, byte_range.end)
            encrypted = encrypt_chunk(plaintext, master_key)

            key = str(uuid.uuid4())
            signature = sign_message(key, private_key)
            key_hash = hash_key(key)

            await self._transport.upload_chunk(
                bucket,
                encrypted,
                key_hash,
                on_progress=tracker.callback_for(index),
                index=index,
            )
            tracker.complete(index)
            logger.debug(f"Uploaded chunk {index + 1}/{count}: {key_hash[:8]}...")

            return Chunk(key=key, signature=signature, size=byte_range.size)

        chunks = await run_bounded(concurrency, count, upload_one)

        logger.info(f"Uploaded {source.name}: {count} chunks")
        return chunks
