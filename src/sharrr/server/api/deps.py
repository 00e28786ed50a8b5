"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from sharrr.server.broker import UrlBroker
from sharrr.server.database import Database
from sharrr.server.storage import ObjectStore


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db


def get_storage(request: Request) -> ObjectStore:
    """Get object storage from app state."""
    storage: ObjectStore | None = request.app.state.storage
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage not configured",
        )
    return storage


def get_broker(request: Request) -> UrlBroker:
    """Get the URL broker from app state."""
    broker: UrlBroker | None = request.app.state.broker
    if broker is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage not configured",
        )
    return broker
