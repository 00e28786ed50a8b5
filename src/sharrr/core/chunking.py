"""Fixed-size chunk planning for sharrr.

This module provides:
- plan_chunks: number of chunks for a file
- chunk_range / iter_chunk_ranges: byte ranges of each planned chunk
- FileSource: range-readable plaintext sources (files on disk, in-memory bytes)

All chunks are exactly ``chunk_size`` bytes except possibly the last one,
which absorbs the remainder.
"""

from __future__ import annotations

import math
import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ChunkRange:
    """Byte range ``[start, end)`` of one planned chunk."""

    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Return the size of this range in bytes."""
        return self.end - self.start


def plan_chunks(file_size: int, chunk_size: int) -> int:
    """Return how many chunks a file of ``file_size`` bytes is split into.

    Args:
        file_size: Plaintext size in bytes.
        chunk_size: Configured chunk size in bytes.

    Returns:
        ``ceil(file_size / chunk_size)``, at least 1.

    Raises:
        ValueError: If chunk_size is not positive or file_size is negative.
    """
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    if file_size < 0:
        raise ValueError(f"File size cannot be negative, got {file_size}")
    return max(1, math.ceil(file_size / chunk_size))


def chunk_range(index: int, file_size: int, chunk_size: int) -> ChunkRange:
    """Return the byte range of the chunk at ``index``.

    Raises:
        IndexError: If index is outside the plan.
    """
    count = plan_chunks(file_size, chunk_size)
    if not 0 <= index < count:
        raise IndexError(f"Chunk index {index} out of range (0..{count - 1})")
    start = index * chunk_size
    end = file_size if index + 1 == count else (index + 1) * chunk_size
    return ChunkRange(index=index, start=start, end=end)


def iter_chunk_ranges(file_size: int, chunk_size: int) -> Iterator[ChunkRange]:
    """Yield the byte range of every planned chunk, in order."""
    for index in range(plan_chunks(file_size, chunk_size)):
        yield chunk_range(index, file_size, chunk_size)


class FileSource(ABC):
    """Plaintext source that supports byte-range reads."""

    @property
    @abstractmethod
    def name(self) -> str:
        """File name shown to the recipient."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Total size in bytes."""

    @property
    def mime_type(self) -> str:
        """MIME type guessed from the name."""
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or DEFAULT_MIME_TYPE

    @abstractmethod
    def read_range(self, start: int, end: int) -> bytes:
        """Read bytes ``[start, end)``."""


class PathSource(FileSource):
    """A file on the local filesystem.

    The file is reopened for every read so concurrent readers never
    share a file position.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        if not self._path.is_file():
            raise FileNotFoundError(f"File not found: {self._path}")

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def size(self) -> int:
        return self._path.stat().st_size

    def read_range(self, start: int, end: int) -> bytes:
        with open(self._path, "rb") as f:
            f.seek(start)
            return f.read(end - start)


class BytesSource(FileSource):
    """In-memory plaintext, mostly useful for tests and small payloads."""

    def __init__(self, data: bytes, name: str = "file.bin", mime_type: str | None = None) -> None:
        self._data = data
        self._name = name
        self._mime_type = mime_type

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def mime_type(self) -> str:
        return self._mime_type or super().mime_type

    def read_range(self, start: int, end: int) -> bytes:
        return self._data[start:end]
