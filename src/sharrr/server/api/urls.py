"""Presigned URL broker API routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from sharrr.core.errors import AuthorizationError
from sharrr.server.api.deps import get_broker
from sharrr.server.broker import UrlBroker
from sharrr.server.schemas import DownloadUrlRequest, UploadUrlRequest, UrlResponse
from sharrr.server.storage import ObjectStoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["urls"])


@router.post("/presigned-url", response_model=UrlResponse)
def issue_upload_url(
    request: UploadUrlRequest,
    broker: UrlBroker = Depends(get_broker),
) -> UrlResponse:
    """Issue a presigned PUT URL for one chunk."""
    try:
        url = broker.issue_upload_url(request.key, request.bucket, request.content_type)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except ObjectStoreError as e:
        logger.error(f"Error generating upload URL: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate upload URL",
        ) from e
    return UrlResponse(url=url)


@router.post("/files/{key}", response_model=UrlResponse)
def issue_download_url(
    key: str,
    request: DownloadUrlRequest,
    broker: UrlBroker = Depends(get_broker),
) -> UrlResponse:
    """Issue a presigned GET URL for one chunk of a share.

    Every authorization failure yields the same response so callers cannot
    tell an unknown alias from a bad signature.
    """
    try:
        url = broker.issue_download_url(
            key=key,
            alias=request.alias,
            bucket=request.bucket,
            key_hash=request.key_hash,
            signature=request.signature,
        )
    except AuthorizationError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        ) from e
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except ObjectStoreError as e:
        logger.error(f"Error generating download URL: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate download URL",
        ) from e
    return UrlResponse(url=url)
