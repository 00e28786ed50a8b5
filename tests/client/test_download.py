"""Tests for the download orchestrator and byte sinks."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from sharrr.client.download import FileDownloader, FileSink
from sharrr.core.crypto import encrypt_chunk, generate_master_key
from sharrr.core.errors import (
    AuthorizationError,
    ChunkUnavailable,
    DecryptionError,
    TransferCancelledError,
)
from sharrr.core.types import Chunk, FileMeta, FileReference, SecretFile


class FakeStream:
    """Chunk stream that delivers data in small pieces."""

    def __init__(self, data: bytes, piece: int = 7) -> None:
        self._data = data
        self._piece = piece

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        for offset in range(0, len(self._data), self._piece):
            await asyncio.sleep(0)
            yield self._data[offset : offset + self._piece]


class FakeTransport:
    """In-memory chunk store keyed by chunk key."""

    def __init__(self, objects: dict[str, bytes], errors: dict[str, Exception] | None = None) -> None:
        self.objects = objects
        self.errors = errors or {}
        self.fetched: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @asynccontextmanager
    async def fetch_chunk(self, alias: str, bucket: str, chunk: Chunk) -> AsyncIterator[FakeStream]:
        self.fetched.append(chunk.key)
        if chunk.key in self.errors:
            raise self.errors[chunk.key]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            yield FakeStream(self.objects[chunk.key])
        finally:
            self.in_flight -= 1


def make_share(parts: list[bytes], key: bytes) -> tuple[SecretFile, dict[str, bytes]]:
    """Encrypt parts into a fake store and describe them as a share."""
    objects = {f"key-{i}": encrypt_chunk(part, key) for i, part in enumerate(parts)}
    chunks = tuple(Chunk(f"key-{i}", "sig", len(part)) for i, part in enumerate(parts))
    size = sum(len(p) for p in parts)
    secret_file = SecretFile(
        alias="alias",
        decryption_key=key,
        meta=FileMeta("file.bin", size, "application/octet-stream", len(parts) == 1),
        reference=FileReference("sharrr", chunks),
    )
    return secret_file, objects


def make_downloader(transport: FakeTransport, progress: list[float] | None = None) -> FileDownloader:
    return FileDownloader(
        transport,  # type: ignore[arg-type]
        progress.append if progress is not None else None,
    )


PARTS = [b"a" * 100, b"b" * 100, b"c" * 37]


class TestIterPlaintext:
    """Tests for FileDownloader.iter_plaintext."""

    @pytest.mark.asyncio
    async def test_yields_chunks_in_order(self) -> None:
        """Plaintext comes out in stored order, one chunk at a time."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        transport = FakeTransport(objects)

        output = [part async for part in make_downloader(transport).iter_plaintext(secret_file)]

        assert output == PARTS
        assert transport.fetched == ["key-0", "key-1", "key-2"]
        assert transport.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_progress_monotonic_to_exactly_one(self) -> None:
        """Progress never decreases, never exceeds 1 and ends at 1."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        progress: list[float] = []

        async for _ in make_downloader(FakeTransport(objects), progress).iter_plaintext(secret_file):
            pass

        assert progress[0] == 0.0
        assert progress == sorted(progress)
        assert max(progress) <= 1.0
        assert progress[-1] == 1.0
        assert secret_file.progress == 1.0
        # Updates arrive while a chunk is still streaming
        assert len(progress) > len(PARTS) + 1

    @pytest.mark.asyncio
    async def test_wrong_key_is_decryption_error(self) -> None:
        """A chunk that fails authentication aborts with DecryptionError."""
        secret_file, objects = make_share(PARTS, generate_master_key())
        secret_file.decryption_key = generate_master_key()

        with pytest.raises(DecryptionError):
            async for _ in make_downloader(FakeTransport(objects)).iter_plaintext(secret_file):
                pass

    @pytest.mark.asyncio
    async def test_tampered_chunk(self) -> None:
        """A modified ciphertext is detected."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        tampered = bytearray(objects["key-1"])
        tampered[-1] ^= 0xFF
        objects["key-1"] = bytes(tampered)
        output: list[bytes] = []

        with pytest.raises(DecryptionError):
            async for part in make_downloader(FakeTransport(objects)).iter_plaintext(secret_file):
                output.append(part)
        assert output == [PARTS[0]]

    @pytest.mark.asyncio
    async def test_missing_chunk_is_distinct_from_decryption(self) -> None:
        """An unavailable chunk raises ChunkUnavailable, not DecryptionError."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        transport = FakeTransport(objects, errors={"key-1": ChunkUnavailable()})

        with pytest.raises(ChunkUnavailable):
            async for _ in make_downloader(transport).iter_plaintext(secret_file):
                pass
        assert transport.fetched == ["key-0", "key-1"]

    @pytest.mark.asyncio
    async def test_authorization_error_propagates(self) -> None:
        """A broker refusal aborts the download."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        transport = FakeTransport(objects, errors={"key-0": AuthorizationError()})

        with pytest.raises(AuthorizationError):
            async for _ in make_downloader(transport).iter_plaintext(secret_file):
                pass

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        """A positive cancel check stops before the next chunk."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        transport = FakeTransport(objects)
        calls = 0

        def cancel_after_first() -> bool:
            nonlocal calls
            calls += 1
            return calls > 1

        with pytest.raises(TransferCancelledError):
            async for _ in make_downloader(transport).iter_plaintext(secret_file, cancel_after_first):
                pass
        assert transport.fetched == ["key-0"]

    @pytest.mark.asyncio
    async def test_no_chunks(self) -> None:
        """A share without chunks cannot be downloaded."""
        secret_file = SecretFile(
            alias="alias",
            decryption_key=generate_master_key(),
            meta=FileMeta("empty", 0, "application/octet-stream", True),
            reference=FileReference("sharrr", ()),
        )

        with pytest.raises(ValueError):
            async for _ in make_downloader(FakeTransport({})).iter_plaintext(secret_file):
                pass


class TestDownloadTo:
    """Tests for FileDownloader.download_to with FileSink."""

    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path: Path) -> None:
        """A successful download lands at the target path."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        target = tmp_path / "out" / "file.bin"

        written = await make_downloader(FakeTransport(objects)).download_to(
            secret_file, FileSink(target)
        )

        assert written == sum(len(p) for p in PARTS)
        assert target.read_bytes() == b"".join(PARTS)
        assert not target.with_suffix(".bin.tmp").exists()

    @pytest.mark.asyncio
    async def test_failure_leaves_no_file(self, tmp_path: Path) -> None:
        """A failed download leaves neither the target nor a temp file."""
        key = generate_master_key()
        secret_file, objects = make_share(PARTS, key)
        transport = FakeTransport(objects, errors={"key-2": ChunkUnavailable()})
        target = tmp_path / "file.bin"

        with pytest.raises(ChunkUnavailable):
            await make_downloader(transport).download_to(secret_file, FileSink(target))

        assert list(tmp_path.iterdir()) == []
