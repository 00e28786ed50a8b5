"""Pydantic schemas for API request/response models.

Field names follow the camelCase wire format used by the clients.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# === URL broker schemas ===


class UploadUrlRequest(_CamelModel):
    """Request body for a presigned upload URL."""

    key: str = Field(min_length=1)
    content_type: str = Field(default="application/octet-stream", alias="contentType")
    bucket: str | None = None


class DownloadUrlRequest(_CamelModel):
    """Request body for a presigned download URL."""

    alias: str
    bucket: str
    key_hash: str = Field(alias="keyHash")
    signature: str


class UrlResponse(BaseModel):
    """A presigned URL."""

    url: str


# === Proxy upload schemas ===


class ProxyUploadRequest(_CamelModel):
    """JSON envelope for proxy uploads."""

    key: str = Field(min_length=1)
    content: str = Field(min_length=1)  # base64
    content_type: str = Field(default="application/octet-stream", alias="contentType")
    bucket: str | None = None


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = True


# === Secret schemas ===


class SecretCreateRequest(_CamelModel):
    """Request body for registering a share."""

    alias: str = Field(min_length=1, max_length=255)
    public_key: str = Field(alias="publicKey", min_length=1)
    file_meta: dict[str, Any] = Field(alias="fileMeta")
    file_reference: dict[str, Any] = Field(alias="fileReference")
    file_size: int = Field(alias="fileSize", ge=0)


class MessageResponse(BaseModel):
    """Response carrying a human-readable message."""

    message: str


class SecretResponse(_CamelModel):
    """Public metadata of a share (no public key)."""

    alias: str
    file_meta: dict[str, Any] = Field(alias="fileMeta")
    file_reference: dict[str, Any] = Field(alias="fileReference")


class StatsResponse(_CamelModel):
    """Usage statistics."""

    total_files_uploaded: int = Field(alias="totalFilesUploaded")
    total_bytes_uploaded: int = Field(alias="totalBytesUploaded")


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
