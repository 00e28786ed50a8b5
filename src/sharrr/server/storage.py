"""Object storage for encrypted chunks.

This module provides:
- Abstract interface for bucketed object storage with presigned URLs
- LocalObjectStore for development/testing (URLs served by this server)
- S3ObjectStore for production (AWS, MinIO, Backblaze B2, Storj)

Objects are always stored private. Reads and writes from clients go
through short-lived presigned URLs only.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlencode

if TYPE_CHECKING:
    from typing import Any

OCTET_STREAM = "application/octet-stream"

# Bucket and object names are restricted to a safe alphabet so they can be
# mapped onto filesystem paths.
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,254}$")


class ObjectNotFoundError(Exception):
    """Raised when an object is not found in storage."""


class ObjectStoreError(Exception):
    """Raised when the storage backend fails."""


def validate_name(name: str, kind: str = "key") -> str:
    """Check a bucket or object name.

    Raises:
        ValueError: If the name contains unsafe characters.
    """
    if not _NAME_PATTERN.match(name) or ".." in name:
        raise ValueError(f"Invalid {kind}: {name!r}")
    return name


class ObjectStore(ABC):
    """Abstract interface for encrypted object storage."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of where objects are stored."""

    @abstractmethod
    def put(self, bucket: str, key: str, data: bytes, content_type: str = OCTET_STREAM) -> None:
        """Store an object."""

    @abstractmethod
    def get(self, bucket: str, key: str) -> bytes:
        """Retrieve an object.

        Raises:
            ObjectNotFoundError: If the object doesn't exist.
        """

    @abstractmethod
    def exists(self, bucket: str, key: str) -> bool:
        """Check if an object exists."""

    @abstractmethod
    def delete(self, bucket: str, key: str) -> bool:
        """Delete an object. Returns False if it didn't exist."""

    @abstractmethod
    def presign_put(
        self,
        bucket: str,
        key: str,
        content_type: str = OCTET_STREAM,
        expires_in: int = 900,
    ) -> str:
        """Return a URL that allows a single PUT of ``key``."""

    @abstractmethod
    def presign_get(self, bucket: str, key: str, expires_in: int = 3600) -> str:
        """Return a URL that allows GET of ``key``."""


class LocalObjectStore(ObjectStore):
    """Local filesystem storage for development and testing.

    Objects live under ``<base>/<bucket>/<prefix>/<key>``. Presigned URLs
    point at this server's ``/storage`` routes and carry an HMAC over
    method, bucket, key and expiry.
    """

    def __init__(self, base_path: Path | str, public_url: str, secret: str) -> None:
        """Initialize local storage.

        Args:
            base_path: Base directory for object storage.
            public_url: Base URL clients use to reach this server.
            secret: Key for signing presigned URLs.
        """
        self._base_path = Path(base_path).resolve()
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._public_url = public_url.rstrip("/")
        self._secret = secret.encode("utf-8")

    @property
    def location(self) -> str:
        """Return the local storage path."""
        return f"Local filesystem: {self._base_path}"

    def _object_path(self, bucket: str, key: str) -> Path:
        """Get the file path for an object.

        Uses first 2 characters of the key as subdirectory prefix.
        """
        validate_name(bucket, "bucket")
        validate_name(key)
        return self._base_path / bucket / key[:2] / key

    def put(self, bucket: str, key: str, data: bytes, content_type: str = OCTET_STREAM) -> None:
        path = self._object_path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise ObjectStoreError(f"Failed to write {bucket}/{key}: {e}") from e

    def get(self, bucket: str, key: str) -> bytes:
        path = self._object_path(bucket, key)
        if not path.exists():
            raise ObjectNotFoundError(f"Object not found: {bucket}/{key}")
        return path.read_bytes()

    def exists(self, bucket: str, key: str) -> bool:
        return self._object_path(bucket, key).exists()

    def delete(self, bucket: str, key: str) -> bool:
        path = self._object_path(bucket, key)
        if path.exists():
            path.unlink()
            return True
        return False

    def _sign(self, method: str, bucket: str, key: str, expires: int) -> str:
        message = f"{method}\n{bucket}\n{key}\n{expires}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def _presign(self, method: str, bucket: str, key: str, expires_in: int) -> str:
        validate_name(bucket, "bucket")
        validate_name(key)
        expires = int(time.time()) + expires_in
        signature = self._sign(method, bucket, key, expires)
        query = urlencode({"expires": expires, "signature": signature})
        return f"{self._public_url}/storage/{bucket}/{key}?{query}"

    def presign_put(
        self,
        bucket: str,
        key: str,
        content_type: str = OCTET_STREAM,
        expires_in: int = 900,
    ) -> str:
        return self._presign("PUT", bucket, key, expires_in)

    def presign_get(self, bucket: str, key: str, expires_in: int = 3600) -> str:
        return self._presign("GET", bucket, key, expires_in)

    def verify(self, method: str, bucket: str, key: str, expires: int, signature: str) -> bool:
        """Check a presigned URL produced by this store."""
        if expires < time.time():
            return False
        expected = self._sign(method, bucket, key, expires)
        return hmac.compare_digest(expected, signature)


class S3ObjectStore(ObjectStore):
    """S3-compatible storage for production (AWS, MinIO, B2, Storj, etc.)."""

    def __init__(
        self,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
    ) -> None:
        """Initialize S3 storage.

        Args:
            endpoint_url: Custom endpoint URL (for MinIO, B2, etc.).
            access_key: AWS access key ID.
            secret_key: AWS secret access key.
            region: AWS region (default: us-east-1).
        """
        import boto3
        from botocore.config import Config

        self._endpoint_url = endpoint_url
        self._client: Any = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            # Path-style addressing is required by B2 and MinIO
            config=Config(s3={"addressing_style": "path"}, signature_version="s3v4"),
        )

    @property
    def location(self) -> str:
        """Return the S3 endpoint."""
        if self._endpoint_url:
            return f"S3: {self._endpoint_url}"
        return "S3: AWS"

    def put(self, bucket: str, key: str, data: bytes, content_type: str = OCTET_STREAM) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to write {bucket}/{key}: {e}") from e

    def get(self, bucket: str, key: str) -> bytes:
        from botocore.exceptions import ClientError

        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            body: bytes = response["Body"].read()
            return body
        except ClientError as e:
            if e.response["Error"]["Code"] == "NoSuchKey":
                raise ObjectNotFoundError(f"Object not found: {bucket}/{key}") from e
            raise

    def exists(self, bucket: str, key: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self._client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError:
            return False

    def delete(self, bucket: str, key: str) -> bool:
        if not self.exists(bucket, key):
            return False
        self._client.delete_object(Bucket=bucket, Key=key)
        return True

    def presign_put(
        self,
        bucket: str,
        key: str,
        content_type: str = OCTET_STREAM,
        expires_in: int = 900,
    ) -> str:
        return self._generate_url(
            "put_object",
            {"Bucket": bucket, "Key": key, "ContentType": content_type},
            expires_in,
        )

    def presign_get(self, bucket: str, key: str, expires_in: int = 3600) -> str:
        return self._generate_url("get_object", {"Bucket": bucket, "Key": key}, expires_in)

    def _generate_url(self, operation: str, params: dict[str, str], expires_in: int) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            url: str = self._client.generate_presigned_url(
                operation, Params=params, ExpiresIn=expires_in
            )
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to presign {operation}: {e}") from e
        return url


def create_storage(config: dict[str, str | None]) -> ObjectStore:
    """Factory function to create storage from configuration.

    Args:
        config: Storage configuration dict with keys:
            - type: "local" or "s3"
            - For local: local_path, public_url, url_secret
            - For S3: endpoint_url, access_key, secret_key, region

    Returns:
        Configured ObjectStore instance.

    Raises:
        ValueError: If storage type is unknown or misconfigured.
    """
    storage_type = config.get("type", "local")

    if storage_type == "local":
        secret = config.get("url_secret")
        if not secret:
            raise ValueError("Local storage requires 'url_secret' configuration")
        return LocalObjectStore(
            config.get("local_path") or "./storage",
            public_url=config.get("public_url") or "http://localhost:8000",
            secret=secret,
        )

    if storage_type == "s3":
        return S3ObjectStore(
            endpoint_url=config.get("endpoint_url"),
            access_key=config.get("access_key"),
            secret_key=config.get("secret_key"),
            region=config.get("region") or "us-east-1",
        )

    raise ValueError(f"Unknown storage type: {storage_type}")
