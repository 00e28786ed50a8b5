"""Shared data model for sharrr.

This module defines the descriptors exchanged between the sender, the
metadata store and the recipient. Wire dictionaries use camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Chunk:
    """Descriptor of one uploaded chunk.

    Attributes:
        key: Random identifier of the chunk (never sent to storage as-is).
        signature: Sender's signature over ``key``.
        size: Plaintext size of the chunk in bytes.
    """

    key: str
    signature: str
    size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chunk:
        """Create from a wire dictionary."""
        return cls(key=data["key"], signature=data["signature"], size=int(data["size"]))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a wire dictionary."""
        return {"key": self.key, "signature": self.signature, "size": self.size}


@dataclass(frozen=True)
class FileMeta:
    """Describes the plaintext file."""

    name: str
    size: int
    mime_type: str
    is_single_chunk: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileMeta:
        """Create from a wire dictionary."""
        return cls(
            name=data["name"],
            size=int(data["size"]),
            mime_type=data.get("mimeType") or "application/octet-stream",
            is_single_chunk=bool(data.get("isSingleChunk", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a wire dictionary."""
        return {
            "name": self.name,
            "size": self.size,
            "mimeType": self.mime_type,
            "isSingleChunk": self.is_single_chunk,
        }


@dataclass(frozen=True)
class FileReference:
    """Where the encrypted chunks live and in which order they concatenate."""

    bucket: str
    chunks: tuple[Chunk, ...]

    @property
    def total_size(self) -> int:
        """Sum of plaintext chunk sizes."""
        return sum(chunk.size for chunk in self.chunks)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileReference:
        """Create from a wire dictionary."""
        return cls(
            bucket=data["bucket"],
            chunks=tuple(Chunk.from_dict(c) for c in data["chunks"]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a wire dictionary."""
        return {"bucket": self.bucket, "chunks": [c.to_dict() for c in self.chunks]}


@dataclass
class SecretFile:
    """Recipient-side view of a shared file.

    ``progress`` is written only by the download orchestrator while a
    download of this instance is running.
    """

    alias: str
    decryption_key: bytes
    meta: FileMeta
    reference: FileReference
    progress: float = field(default=0.0)

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def size(self) -> int:
        return self.meta.size

    @property
    def mime_type(self) -> str:
        return self.meta.mime_type

    @property
    def bucket(self) -> str:
        return self.reference.bucket

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self.reference.chunks


@dataclass(frozen=True)
class UploadResult:
    """Result of a completed upload job."""

    meta: FileMeta
    reference: FileReference
