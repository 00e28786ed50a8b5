"""Tests for the server database."""

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError

from sharrr.server.database import Database


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


REFERENCE = {"bucket": "sharrr", "chunks": [{"key": "k", "signature": "s", "size": 3}]}
META = {"name": "a.txt", "size": 3, "mimeType": "text/plain", "isSingleChunk": True}


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_creates_db_file(self, tmp_path: Path) -> None:
        """Database should create SQLite file."""
        db_path = tmp_path / "nested" / "test.db"
        db = Database(db_path)
        assert db_path.exists()
        assert db.path == db_path
        db.close()


class TestSecrets:
    """Tests for share records."""

    def test_create_and_get(self, db: Database) -> None:
        """A stored share can be read back by alias."""
        db.create_secret("alias", "pubkey", META, REFERENCE, 3)

        secret = db.get_secret("alias")

        assert secret is not None
        assert secret.public_key == "pubkey"
        assert '"bucket": "sharrr"' in secret.file_reference
        assert secret.created_at is not None

    def test_get_unknown(self, db: Database) -> None:
        """Unknown aliases return None."""
        assert db.get_secret("missing") is None

    def test_alias_is_unique(self, db: Database) -> None:
        """A second share with the same alias is rejected."""
        db.create_secret("alias", "pubkey", META, REFERENCE, 3)
        with pytest.raises(IntegrityError):
            db.create_secret("alias", "other", META, REFERENCE, 3)


class TestStats:
    """Tests for usage statistics."""

    def test_initial_stats(self, db: Database) -> None:
        """A fresh database reports zero usage."""
        assert db.get_stats() == {"totalFilesUploaded": 0, "totalBytesUploaded": 0}

    def test_stats_count_shares(self, db: Database) -> None:
        """Every share increments files and bytes."""
        db.create_secret("one", "pubkey", META, REFERENCE, 3)
        db.create_secret("two", "pubkey", META, REFERENCE, 1000)
        assert db.get_stats() == {"totalFilesUploaded": 2, "totalBytesUploaded": 1003}

    def test_duplicate_does_not_count(self, db: Database) -> None:
        """A rejected share does not change statistics."""
        db.create_secret("one", "pubkey", META, REFERENCE, 3)
        with pytest.raises(IntegrityError):
            db.create_secret("one", "pubkey", META, REFERENCE, 3)
        assert db.get_stats()["totalFilesUploaded"] == 1
