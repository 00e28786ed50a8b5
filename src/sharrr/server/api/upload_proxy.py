"""Proxy upload API route.

Fallback path for clients that cannot PUT to a presigned URL directly
(for example when the object store's CORS policy rejects them). Accepts
either a multipart form (``file`` named after the object key, plus
``bucket``) or a JSON envelope with base64 content.
"""

from __future__ import annotations

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from sharrr.server.api.deps import get_broker, get_storage
from sharrr.server.broker import UrlBroker
from sharrr.server.schemas import ProxyUploadRequest, SuccessResponse
from sharrr.server.storage import OCTET_STREAM, ObjectStore, ObjectStoreError, validate_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["upload"])


def _missing_fields() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Missing required fields",
    )


async def _read_multipart(request: Request) -> tuple[str, str | None, bytes, str]:
    form = await request.form()
    file = form.get("file")
    bucket = form.get("bucket")
    if not isinstance(file, UploadFile) or not file.filename:
        raise _missing_fields()
    if bucket is not None and not isinstance(bucket, str):
        raise _missing_fields()
    data = await file.read()
    return file.filename, bucket or None, data, file.content_type or OCTET_STREAM


async def _read_json(request: Request) -> tuple[str, str | None, bytes, str]:
    try:
        envelope = ProxyUploadRequest.model_validate(await request.json())
        data = base64.b64decode(envelope.content, validate=True)
    except (ValidationError, binascii.Error, ValueError) as e:
        raise _missing_fields() from e
    return envelope.key, envelope.bucket, data, envelope.content_type


@router.post("/upload-proxy", response_model=SuccessResponse)
async def upload_proxy(
    request: Request,
    storage: ObjectStore = Depends(get_storage),
    broker: UrlBroker = Depends(get_broker),
) -> SuccessResponse:
    """Store one encrypted chunk on behalf of the client."""
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        key, bucket, data, object_type = await _read_multipart(request)
    else:
        key, bucket, data, object_type = await _read_json(request)

    if not data:
        raise _missing_fields()

    try:
        bucket = validate_name(bucket or broker.default_bucket, "bucket")
        validate_name(key)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    try:
        storage.put(bucket, key, data, object_type)
    except ObjectStoreError as e:
        logger.error(f"Proxy upload error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload file",
        ) from e

    logger.info(f"Proxy upload stored {key[:8]}... in {bucket} ({len(data)} bytes)")
    return SuccessResponse()
