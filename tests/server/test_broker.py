"""Tests for the presigned URL broker."""

import base64
import time
from collections.abc import Generator
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest

from sharrr.core.crypto import (
    export_public_key,
    generate_signing_key_pair,
    hash_key,
    sign_message,
)
from sharrr.core.errors import AliasNotFoundError, AuthorizationError, SignatureInvalidError
from sharrr.server.broker import UrlBroker
from sharrr.server.database import Database
from sharrr.server.storage import LocalObjectStore


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def storage(tmp_path: Path) -> LocalObjectStore:
    """Create a test storage."""
    return LocalObjectStore(tmp_path / "objects", "http://testserver", "secret")


@pytest.fixture
def broker(db: Database, storage: LocalObjectStore) -> UrlBroker:
    """Create a broker with a 'sharrr' default bucket."""
    return UrlBroker(db, storage, "sharrr")


class TestIssueUploadUrl:
    """Tests for upload URL issuance."""

    def test_uses_default_bucket(self, broker: UrlBroker) -> None:
        """Requests without a bucket use the default one."""
        url = broker.issue_upload_url("a" * 64)
        assert urlsplit(url).path == f"/storage/sharrr/{'a' * 64}"

    def test_explicit_bucket(self, broker: UrlBroker) -> None:
        """An explicit bucket wins."""
        url = broker.issue_upload_url("key", bucket="other")
        assert urlsplit(url).path == "/storage/other/key"

    def test_upload_url_expires_in_fifteen_minutes(
        self, broker: UrlBroker, storage: LocalObjectStore
    ) -> None:
        """Upload URLs are short-lived PUT URLs."""
        query = parse_qs(urlsplit(broker.issue_upload_url("key")).query)
        expires = int(query["expires"][0])
        assert 0 < expires - time.time() <= 15 * 60
        assert storage.verify("PUT", "sharrr", "key", expires, query["signature"][0])

    def test_invalid_key(self, broker: UrlBroker) -> None:
        """Unsafe keys are rejected."""
        with pytest.raises(ValueError):
            broker.issue_upload_url("../escape")


class TestIssueDownloadUrl:
    """Tests for download URL issuance and its authorization check."""

    @pytest.fixture
    def share(self, db: Database) -> dict[str, str]:
        """Register a share and return the credentials for one chunk."""
        private_key, public_key = generate_signing_key_pair()
        key = "chunk-key"
        reference = {"bucket": "sharrr", "chunks": [{"key": key, "signature": "x", "size": 3}]}
        db.create_secret("alias", export_public_key(public_key), {"name": "a"}, reference, 3)
        return {
            "key": key,
            "alias": "alias",
            "bucket": "sharrr",
            "key_hash": hash_key(key),
            "signature": sign_message(key, private_key),
        }

    def test_valid_signature(self, broker: UrlBroker, share: dict[str, str]) -> None:
        """A correctly signed request gets a GET URL for the hashed key."""
        url = broker.issue_download_url(**share)
        assert urlsplit(url).path == f"/storage/sharrr/{share['key_hash']}"

    def test_unknown_alias(self, broker: UrlBroker, share: dict[str, str]) -> None:
        """Unknown aliases are refused."""
        with pytest.raises(AliasNotFoundError):
            broker.issue_download_url(**{**share, "alias": "missing"})

    def test_bad_signature(self, broker: UrlBroker, share: dict[str, str]) -> None:
        """A signature from another key pair is refused."""
        other_private, _ = generate_signing_key_pair()
        forged = sign_message(share["key"], other_private)
        with pytest.raises(SignatureInvalidError):
            broker.issue_download_url(**{**share, "signature": forged})

    def test_hash_mismatch(self, broker: UrlBroker, share: dict[str, str]) -> None:
        """A valid signature cannot unlock another object."""
        with pytest.raises(SignatureInvalidError):
            broker.issue_download_url(**{**share, "key_hash": hash_key("other")})

    def test_bucket_mismatch(self, broker: UrlBroker, share: dict[str, str]) -> None:
        """The bucket must match the registered reference."""
        with pytest.raises(SignatureInvalidError):
            broker.issue_download_url(**{**share, "bucket": "elsewhere"})

    def test_unusable_stored_key(self, broker: UrlBroker, db: Database) -> None:
        """A stored key of an unknown algorithm is refused like a bad signature."""
        unknown = base64.b64encode(bytes.fromhex("300b300506032a030403020001")).decode("ascii")
        reference = {"bucket": "sharrr", "chunks": [{"key": "k", "signature": "x", "size": 1}]}
        db.create_secret("odd", unknown, {"name": "a"}, reference, 1)

        with pytest.raises(SignatureInvalidError):
            broker.issue_download_url("k", "odd", "sharrr", hash_key("k"), "AAAA")

    def test_all_refusals_look_the_same(self, broker: UrlBroker, share: dict[str, str]) -> None:
        """Every refusal carries the same message."""
        messages = set()
        for override in ({"alias": "missing"}, {"signature": "AAAA"}, {"bucket": "elsewhere"}):
            with pytest.raises(AuthorizationError) as exc_info:
                broker.issue_download_url(**{**share, **override})
            messages.add(str(exc_info.value))
        assert messages == {"Not authorized"}
