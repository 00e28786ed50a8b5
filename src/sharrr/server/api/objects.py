"""Object routes backing LocalObjectStore presigned URLs.

Only active when the server uses local storage; an S3 deployment hands
out URLs that point at the object store itself.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from sharrr.server.api.deps import get_storage
from sharrr.server.storage import (
    OCTET_STREAM,
    LocalObjectStore,
    ObjectNotFoundError,
    ObjectStore,
)

router = APIRouter(prefix="/storage", tags=["storage"])


def _local_store(storage: ObjectStore = Depends(get_storage)) -> LocalObjectStore:
    if not isinstance(storage, LocalObjectStore):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Local object storage not configured",
        )
    return storage


def _check_signature(
    store: LocalObjectStore,
    method: str,
    bucket: str,
    key: str,
    expires: int,
    signature: str,
) -> None:
    try:
        valid = store.verify(method, bucket, key, expires, signature)
    except TypeError:
        valid = False
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Request has expired or signature does not match",
        )


@router.put("/{bucket}/{key}")
async def put_object(
    bucket: str,
    key: str,
    expires: int,
    signature: str,
    request: Request,
    store: LocalObjectStore = Depends(_local_store),
) -> Response:
    """Write an object through a presigned PUT URL."""
    _check_signature(store, "PUT", bucket, key, expires, signature)
    data = await request.body()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty object data",
        )
    try:
        store.put(bucket, key, data, request.headers.get("content-type", OCTET_STREAM))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    return Response(status_code=status.HTTP_200_OK)


@router.get("/{bucket}/{key}")
def get_object(
    bucket: str,
    key: str,
    expires: int,
    signature: str,
    store: LocalObjectStore = Depends(_local_store),
) -> Response:
    """Read an object through a presigned GET URL."""
    _check_signature(store, "GET", bucket, key, expires, signature)
    try:
        data = store.get(bucket, key)
    except ObjectNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="The specified key does not exist.",
        ) from e
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    return Response(content=data, media_type=OCTET_STREAM)
