"""Tests for object storage implementations."""

from collections.abc import Generator
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest

from sharrr.server.storage import (
    LocalObjectStore,
    ObjectNotFoundError,
    S3ObjectStore,
    create_storage,
    validate_name,
)


class TestValidateName:
    """Tests for bucket/key name validation."""

    def test_accepts_hashes(self) -> None:
        """Hex hashes and simple bucket names are valid."""
        assert validate_name("a" * 64) == "a" * 64
        assert validate_name("my-bucket.v1", "bucket") == "my-bucket.v1"

    @pytest.mark.parametrize("name", ["", "../etc", "a/b", ".hidden", "a..b", "x" * 300])
    def test_rejects_unsafe_names(self, name: str) -> None:
        """Names that could escape the storage root are rejected."""
        with pytest.raises(ValueError):
            validate_name(name)


class TestLocalObjectStore:
    """Tests for LocalObjectStore implementation."""

    @pytest.fixture
    def storage(self, tmp_path: Path) -> LocalObjectStore:
        """Create a LocalObjectStore instance for testing."""
        return LocalObjectStore(tmp_path / "objects", "http://testserver", "secret")

    def test_put_and_get(self, storage: LocalObjectStore) -> None:
        """get() should return what put() stored."""
        storage.put("sharrr", "ab" + "c" * 62, b"encrypted chunk data")
        assert storage.get("sharrr", "ab" + "c" * 62) == b"encrypted chunk data"

    def test_put_creates_prefix_directory(self, storage: LocalObjectStore) -> None:
        """Objects are spread by the first two characters of the key."""
        key = "ab" + "c" * 62
        storage.put("sharrr", key, b"data")
        assert (storage._base_path / "sharrr" / "ab" / key).exists()

    def test_buckets_are_separate(self, storage: LocalObjectStore) -> None:
        """The same key in two buckets is two objects."""
        storage.put("one", "key", b"1")
        assert storage.exists("one", "key")
        assert not storage.exists("two", "key")

    def test_get_missing(self, storage: LocalObjectStore) -> None:
        """get() should raise ObjectNotFoundError for missing objects."""
        with pytest.raises(ObjectNotFoundError):
            storage.get("sharrr", "missing")

    def test_delete(self, storage: LocalObjectStore) -> None:
        """delete() should remove the object and report whether it existed."""
        storage.put("sharrr", "key", b"data")
        assert storage.delete("sharrr", "key") is True
        assert storage.delete("sharrr", "key") is False

    def test_presigned_url_verifies(self, storage: LocalObjectStore) -> None:
        """A presigned URL carries a signature the store accepts."""
        url = storage.presign_get("sharrr", "key", expires_in=60)
        parts = urlsplit(url)
        query = parse_qs(parts.query)

        assert parts.netloc == "testserver"
        assert parts.path == "/storage/sharrr/key"
        assert storage.verify("GET", "sharrr", "key", int(query["expires"][0]), query["signature"][0])

    def test_presigned_url_is_method_bound(self, storage: LocalObjectStore) -> None:
        """A GET URL cannot be used for PUT."""
        query = parse_qs(urlsplit(storage.presign_get("sharrr", "key")).query)
        expires, signature = int(query["expires"][0]), query["signature"][0]

        assert not storage.verify("PUT", "sharrr", "key", expires, signature)
        assert not storage.verify("GET", "sharrr", "other", expires, signature)

    def test_expired_url_rejected(self, storage: LocalObjectStore) -> None:
        """An expired URL no longer verifies."""
        query = parse_qs(urlsplit(storage.presign_put("sharrr", "key", expires_in=-10)).query)
        assert not storage.verify("PUT", "sharrr", "key", int(query["expires"][0]), query["signature"][0])

    def test_location(self, storage: LocalObjectStore) -> None:
        """location should describe the local path."""
        assert "Local filesystem" in storage.location


class TestS3ObjectStore:
    """Tests for S3ObjectStore using moto mock."""

    @pytest.fixture
    def mock_s3(self) -> Generator[None, None, None]:
        """Set up moto mock for S3."""
        pytest.importorskip("moto")
        import boto3
        from moto import mock_aws

        with mock_aws():
            client = boto3.client("s3", region_name="us-east-1")
            client.create_bucket(Bucket="test-bucket")
            yield

    @pytest.fixture
    def storage(self, mock_s3: None) -> S3ObjectStore:
        """Create an S3ObjectStore instance for testing."""
        return S3ObjectStore(access_key="testing", secret_key="testing", region="us-east-1")

    def test_put_and_get(self, storage: S3ObjectStore) -> None:
        """put() and get() should work correctly."""
        storage.put("test-bucket", "a" * 64, b"s3 encrypted data")
        assert storage.get("test-bucket", "a" * 64) == b"s3 encrypted data"

    def test_get_missing(self, storage: S3ObjectStore) -> None:
        """get() should raise ObjectNotFoundError for missing objects."""
        with pytest.raises(ObjectNotFoundError):
            storage.get("test-bucket", "missing")

    def test_exists_and_delete(self, storage: S3ObjectStore) -> None:
        """exists() and delete() should reflect stored objects."""
        storage.put("test-bucket", "key", b"data")
        assert storage.exists("test-bucket", "key")
        assert storage.delete("test-bucket", "key") is True
        assert not storage.exists("test-bucket", "key")
        assert storage.delete("test-bucket", "key") is False

    def test_presigned_urls(self, storage: S3ObjectStore) -> None:
        """Presigned URLs point at the bucket and key with an expiry."""
        put_url = storage.presign_put("test-bucket", "key", expires_in=900)
        get_url = storage.presign_get("test-bucket", "key", expires_in=3600)

        assert "/test-bucket/key" in put_url
        assert "X-Amz-Expires=900" in put_url
        assert "X-Amz-Expires=3600" in get_url


class TestCreateStorage:
    """Tests for create_storage factory."""

    def test_create_local_storage(self, tmp_path: Path) -> None:
        """Should create LocalObjectStore for type='local'."""
        storage = create_storage(
            {"type": "local", "local_path": str(tmp_path), "url_secret": "secret"}
        )
        assert isinstance(storage, LocalObjectStore)

    def test_local_requires_secret(self, tmp_path: Path) -> None:
        """Local storage cannot sign URLs without a secret."""
        with pytest.raises(ValueError, match="url_secret"):
            create_storage({"type": "local", "local_path": str(tmp_path)})

    def test_create_s3_storage(self) -> None:
        """Should create S3ObjectStore for type='s3'."""
        pytest.importorskip("moto")
        from moto import mock_aws

        with mock_aws():
            storage = create_storage({"type": "s3", "region": "us-east-1"})
            assert isinstance(storage, S3ObjectStore)

    def test_unknown_type_raises(self) -> None:
        """Should raise ValueError for unknown storage type."""
        with pytest.raises(ValueError, match="Unknown storage type"):
            create_storage({"type": "ftp"})
