"""FastAPI application for the sharrr server.

This module creates and configures the FastAPI application with:
- Presigned URL broker for chunk uploads and downloads
- Proxy upload endpoint
- Share metadata and statistics store
- Object routes for local storage

Usage:
    uvicorn sharrr.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import secrets
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from sharrr import __version__
from sharrr.server.api.router import router as api_router
from sharrr.server.broker import UrlBroker
from sharrr.server.database import Database
from sharrr.server.storage import ObjectStore, create_storage

DEFAULT_BUCKET = "sharrr"

logger = logging.getLogger(__name__)


def _db_path() -> Path:
    return Path(os.environ.get("SHARRR_DB_PATH", "sharrr.db"))


def _log_path() -> Path:
    return Path(os.environ.get("SHARRR_LOG_PATH", "sharrr-server.log"))


def _build_storage_config() -> dict[str, str | None]:
    """Build storage configuration from environment variables."""
    # S3 storage if bucket is configured
    s3_bucket = os.environ.get("SHARRR_S3_BUCKET")
    if s3_bucket:
        return {
            "type": "s3",
            "bucket": s3_bucket,
            "endpoint_url": os.environ.get("SHARRR_S3_ENDPOINT"),
            "access_key": os.environ.get("SHARRR_S3_ACCESS_KEY"),
            "secret_key": os.environ.get("SHARRR_S3_SECRET_KEY"),
            "region": os.environ.get("SHARRR_S3_REGION", "us-east-1"),
        }

    url_secret = os.environ.get("SHARRR_URL_SECRET")
    if not url_secret:
        # Issued URLs stop verifying after a restart
        logger.warning("SHARRR_URL_SECRET not set, using a random URL signing secret")
        url_secret = secrets.token_urlsafe(32)

    # Local storage (default)
    return {
        "type": "local",
        "local_path": os.environ.get("SHARRR_STORAGE_PATH", "storage"),
        "public_url": os.environ.get("SHARRR_PUBLIC_URL", "http://localhost:8000"),
        "url_secret": url_secret,
    }


def _default_bucket(storage_config: dict[str, str | None]) -> str:
    return (
        os.environ.get("SHARRR_DEFAULT_BUCKET")
        or storage_config.get("bucket")
        or DEFAULT_BUCKET
    )


def setup_logging(log_path: Path) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for sharrr
    root_logger = logging.getLogger("sharrr")
    root_logger.setLevel(logging.INFO)

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_name)
        uvicorn_logger.addHandler(file_handler)


def create_app(
    db: Database,
    storage: ObjectStore | None = None,
    default_bucket: str = DEFAULT_BUCKET,
) -> FastAPI:
    """Create FastAPI application with custom database and storage.

    Args:
        db: Database instance.
        storage: Optional ObjectStore instance. Without one, the URL and
            upload routes answer 503.
        default_bucket: Bucket used when a request names none.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("sharrr server starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        if storage:
            logger.info("  Storage:  %s", storage.location)
            logger.info("  Bucket:   %s", default_bucket)
        else:
            logger.info("  Storage:  None (storage disabled)")
        logger.info("=" * 60)

        yield

        logger.info("sharrr server shutting down")
        db.close()

    application = FastAPI(
        title="sharrr server",
        description="End-to-end encrypted file sharing broker",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.db = db
    application.state.storage = storage
    application.state.broker = (
        UrlBroker(db, storage, default_bucket) if storage is not None else None
    )

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(_log_path())
    storage_config = _build_storage_config()
    return create_app(
        db=Database(_db_path()),
        storage=create_storage(storage_config),
        default_bucket=_default_bucket(storage_config),
    )
