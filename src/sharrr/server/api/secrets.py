"""Share metadata API routes."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from sharrr.core.crypto import load_public_key
from sharrr.core.types import FileMeta, FileReference
from sharrr.server.api.deps import get_db
from sharrr.server.database import Database
from sharrr.server.schemas import (
    MessageResponse,
    SecretCreateRequest,
    SecretResponse,
    StatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["secrets"])


@router.post("/secrets", response_model=MessageResponse)
def create_secret(
    request: SecretCreateRequest,
    db: Database = Depends(get_db),
) -> MessageResponse:
    """Register a share under a caller-chosen alias."""
    try:
        FileMeta.from_dict(request.file_meta)
        reference = FileReference.from_dict(request.file_reference)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Malformed file descriptor: {e}",
        ) from e
    if not reference.chunks:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File reference has no chunks",
        )

    try:
        load_public_key(request.public_key)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid public key: {e}",
        ) from e

    try:
        db.create_secret(
            alias=request.alias,
            public_key=request.public_key,
            file_meta=request.file_meta,
            file_reference=request.file_reference,
            file_size=request.file_size,
        )
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Alias need to be unique.",
        ) from e

    logger.info(f"Stored share with {len(reference.chunks)} chunk(s) in {reference.bucket}")
    return MessageResponse(message="File encrypted and saved.")


@router.get("/secrets/{alias}", response_model=SecretResponse)
def get_secret(
    alias: str,
    db: Database = Depends(get_db),
) -> SecretResponse:
    """Get the public metadata of a share."""
    secret = db.get_secret(alias)
    if secret is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Secret not found",
        )
    return SecretResponse(
        alias=secret.alias,
        file_meta=json.loads(secret.file_meta),
        file_reference=json.loads(secret.file_reference),
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(db: Database = Depends(get_db)) -> StatsResponse:
    """Get usage statistics."""
    return StatsResponse.model_validate(db.get_stats())
