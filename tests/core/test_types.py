"""Tests for the shared data model."""

from __future__ import annotations

from sharrr.core.types import Chunk, FileMeta, FileReference, SecretFile


class TestChunk:
    """Tests for Chunk descriptors."""

    def test_from_dict(self) -> None:
        """Should parse a wire dictionary."""
        chunk = Chunk.from_dict({"key": "k1", "signature": "sig", "size": "42"})
        assert chunk == Chunk(key="k1", signature="sig", size=42)

    def test_to_dict(self) -> None:
        """Should produce a wire dictionary."""
        assert Chunk("k1", "sig", 42).to_dict() == {"key": "k1", "signature": "sig", "size": 42}


class TestFileMeta:
    """Tests for FileMeta."""

    def test_wire_format_is_camel_case(self) -> None:
        """Wire keys should be camelCase."""
        meta = FileMeta(name="a.pdf", size=10, mime_type="application/pdf", is_single_chunk=True)
        assert meta.to_dict() == {
            "name": "a.pdf",
            "size": 10,
            "mimeType": "application/pdf",
            "isSingleChunk": True,
        }

    def test_from_dict_defaults(self) -> None:
        """Missing optional fields get defaults."""
        meta = FileMeta.from_dict({"name": "a", "size": 1})
        assert meta.mime_type == "application/octet-stream"
        assert meta.is_single_chunk is False


class TestFileReference:
    """Tests for FileReference."""

    def test_preserves_chunk_order(self) -> None:
        """Chunks keep the order they were listed in."""
        data = {
            "bucket": "b",
            "chunks": [
                {"key": "second", "signature": "s", "size": 3},
                {"key": "first", "signature": "s", "size": 5},
            ],
        }
        reference = FileReference.from_dict(data)
        assert [c.key for c in reference.chunks] == ["second", "first"]
        assert reference.total_size == 8
        assert reference.to_dict() == data


class TestSecretFile:
    """Tests for SecretFile."""

    def test_properties_delegate(self) -> None:
        """Convenience properties read from meta and reference."""
        chunk = Chunk("k", "s", 4)
        secret_file = SecretFile(
            alias="alias",
            decryption_key=b"\x00" * 32,
            meta=FileMeta("doc.txt", 4, "text/plain", True),
            reference=FileReference("bucket", (chunk,)),
        )
        assert secret_file.name == "doc.txt"
        assert secret_file.size == 4
        assert secret_file.mime_type == "text/plain"
        assert secret_file.bucket == "bucket"
        assert secret_file.chunks == (chunk,)
        assert secret_file.progress == 0.0
