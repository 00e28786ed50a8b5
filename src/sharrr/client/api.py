"""HTTP client for the sharrr server API.

This module provides:
- BrokerClient: async HTTP client for the URL broker, the proxy upload
  endpoint and the share metadata store
- Presigned object transfers (direct PUT / streamed GET)
"""

from __future__ import annotations

import base64
import logging
from collections.abc import AsyncIterable, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from sharrr.client.retry import RetryPolicy, RetryTransport
from sharrr.core.config import ServerConfig
from sharrr.core.errors import AuthorizationError, PresignedUrlError
from sharrr.core.types import FileMeta, FileReference

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ForbiddenError(APIError):
    """The server refused the request."""


class ConflictError(APIError):
    """Resource already exists."""


class NotFoundError(APIError):
    """Resource not found."""


def _detail(response: httpx.Response, default: str) -> str:
    """Extract an error message from a response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or default
    if isinstance(data, dict):
        return str(data.get("detail", default))
    return default


def _presigned_url(response: httpx.Response) -> str:
    """Extract the URL from a broker response.

    Raises:
        ValueError: If the body does not carry a URL.
    """
    data = response.json()
    url = data.get("url") if isinstance(data, dict) else None
    if not isinstance(url, str) or not url:
        raise ValueError("Broker response carries no URL")
    return url


class BrokerClient:
    """Async HTTP client for the sharrr server API.

    The same underlying ``httpx.AsyncClient`` also performs the direct
    transfers against presigned object-store URLs, which are absolute and
    therefore bypass the base URL.
    """

    def __init__(
        self,
        config: ServerConfig,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server connection settings.
            retry_policy: Retry policy for idempotent requests (default: 5 retries).
            transport: Optional inner transport (tests, ASGI apps).
        """
        self._config = config
        self._retry_policy = retry_policy or RetryPolicy()
        if transport is None:
            transport = httpx.AsyncHTTPTransport(verify=config.verify_ssl)
        self._client = httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            transport=RetryTransport(self._retry_policy, transport),
        )

    @property
    def server_url(self) -> str:
        return self._config.server_url

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> BrokerClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.aclose()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 403:
            raise ForbiddenError(_detail(response, "Not authorized"), 403)
        if response.status_code == 404:
            raise NotFoundError(_detail(response, "Resource not found"), 404)
        if response.status_code == 409:
            raise ConflictError(_detail(response, "Conflict"), 409)
        if response.status_code >= 400:
            raise APIError(_detail(response, "Unknown error"), response.status_code)
        return response

    # === URL broker ===

    async def issue_upload_url(
        self,
        key: str,
        bucket: str,
        content_type: str = OCTET_STREAM,
    ) -> str:
        """Request a short-lived presigned PUT URL for one object.

        Args:
            key: Object-store key (the hashed chunk key).
            bucket: Storage namespace.
            content_type: Content type the upload will be sent with.

        Raises:
            PresignedUrlError: If the broker could not issue a URL.
        """
        try:
            response = self._handle_response(
                await self._client.post(
                    "/api/v1/presigned-url",
                    json={"key": key, "contentType": content_type, "bucket": bucket},
                )
            )
            return _presigned_url(response)
        except (APIError, httpx.HTTPError, ValueError) as e:
            raise PresignedUrlError(f"Failed to get presigned URL: {e}") from e

    async def issue_download_url(
        self,
        key: str,
        alias: str,
        bucket: str,
        key_hash: str,
        signature: str,
    ) -> str:
        """Request a short-lived presigned GET URL for one chunk.

        The broker verifies ``signature`` against the public key registered
        for ``alias`` before issuing anything.

        Raises:
            AuthorizationError: If the broker refused the credentials.
            PresignedUrlError: If the broker failed for any other reason.
        """
        try:
            response = self._handle_response(
                await self._client.post(
                    f"/api/v1/files/{key}",
                    json={
                        "alias": alias,
                        "bucket": bucket,
                        "keyHash": key_hash,
                        "signature": signature,
                    },
                )
            )
            return _presigned_url(response)
        except ForbiddenError:
            raise AuthorizationError() from None
        except (APIError, httpx.HTTPError, ValueError) as e:
            raise PresignedUrlError(f"Failed to get download URL: {e}") from e

    # === Presigned object transfers ===

    async def put_object(
        self,
        url: str,
        content: bytes | AsyncIterable[bytes],
        content_length: int,
        content_type: str = OCTET_STREAM,
    ) -> None:
        """Write an object directly to a presigned URL.

        Raises:
            httpx.HTTPError: On network failure.
            APIError: On a non-2xx response.
        """
        response = await self._client.put(
            url,
            content=content,
            headers={"Content-Type": content_type, "Content-Length": str(content_length)},
        )
        if not response.is_success:
            raise APIError(
                f"Upload failed with status {response.status_code}: {response.text}",
                response.status_code,
            )

    @asynccontextmanager
    async def stream_object(self, url: str) -> AsyncIterator[httpx.Response]:
        """Open a streamed GET against a presigned URL."""
        async with self._client.stream("GET", url) as response:
            yield response

    # === Proxy upload ===

    async def proxy_upload(self, key: str, bucket: str, data: bytes) -> None:
        """Upload an object through the server (multipart envelope).

        Raises:
            APIError, httpx.HTTPError: If the proxy refused or failed.
        """
        self._handle_response(
            await self._client.post(
                "/api/v1/upload-proxy",
                files={"file": (key, data, OCTET_STREAM)},
                data={"bucket": bucket},
            )
        )

    async def proxy_upload_json(self, key: str, bucket: str, data: bytes) -> None:
        """Upload an object through the server (base64-in-JSON envelope)."""
        self._handle_response(
            await self._client.post(
                "/api/v1/upload-proxy",
                json={
                    "key": key,
                    "content": base64.b64encode(data).decode("ascii"),
                    "contentType": OCTET_STREAM,
                    "bucket": bucket,
                },
            )
        )

    # === Share metadata ===

    async def create_secret(
        self,
        alias: str,
        public_key: str,
        meta: FileMeta,
        reference: FileReference,
    ) -> None:
        """Register a share under ``alias``.

        Raises:
            ConflictError: If the alias is already taken.
        """
        self._handle_response(
            await self._client.post(
                "/api/v1/secrets",
                json={
                    "alias": alias,
                    "publicKey": public_key,
                    "fileMeta": meta.to_dict(),
                    "fileReference": reference.to_dict(),
                    "fileSize": meta.size,
                },
            )
        )

    async def get_secret(self, alias: str) -> tuple[FileMeta, FileReference]:
        """Fetch the metadata registered under ``alias``.

        Raises:
            NotFoundError: If no share exists for the alias.
        """
        response = self._handle_response(await self._client.get(f"/api/v1/secrets/{alias}"))
        data: dict[str, Any] = response.json()
        return (
            FileMeta.from_dict(data["fileMeta"]),
            FileReference.from_dict(data["fileReference"]),
        )
