"""Server database using SQLAlchemy with SQLite.

This module provides:
- Share metadata storage keyed by alias
- Usage statistics
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sharrr.server.models import Base, Secret, Stats

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

STATS_ID = 1


class Database:
    """SQLAlchemy database for share metadata.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Secret operations ===

    def create_secret(
        self,
        alias: str,
        public_key: str,
        file_meta: dict[str, Any],
        file_reference: dict[str, Any],
        file_size: int,
    ) -> Secret:
        """Store a new share and count it in the statistics.

        A failure to update statistics is logged and does not fail the share.

        Raises:
            IntegrityError: If the alias already exists.
        """
        with self._session() as session:
            secret = Secret(
                alias=alias,
                public_key=public_key,
                file_meta=json.dumps(file_meta),
                file_reference=json.dumps(file_reference),
            )
            session.add(secret)
            session.commit()
            session.refresh(secret)
            session.expunge(secret)

        try:
            self._increment_stats(file_size)
        except SQLAlchemyError as e:
            logger.error(f"Couldn't update stats: {e}")

        return secret

    def get_secret(self, alias: str) -> Secret | None:
        """Get a share by alias.

        Returns:
            Secret if found, None otherwise.
        """
        with self._session() as session:
            stmt = select(Secret).where(Secret.alias == alias)
            secret = session.execute(stmt).scalar_one_or_none()
            if secret:
                session.expunge(secret)
            return secret

    # === Statistics ===

    def _increment_stats(self, file_size: int) -> None:
        with self._session() as session:
            stats = session.get(Stats, STATS_ID)
            if stats is None:
                stats = Stats(id=STATS_ID, total_files_uploaded=0, total_bytes_uploaded=0)
                session.add(stats)
            stats.total_files_uploaded += 1
            stats.total_bytes_uploaded += file_size
            session.commit()

    def get_stats(self) -> dict[str, int]:
        """Return usage statistics."""
        with self._session() as session:
            stats = session.get(Stats, STATS_ID)
            if stats is None:
                return {"totalFilesUploaded": 0, "totalBytesUploaded": 0}
            return {
                "totalFilesUploaded": stats.total_files_uploaded,
                "totalBytesUploaded": stats.total_bytes_uploaded,
            }
