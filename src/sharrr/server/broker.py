"""URL broker: issues short-lived presigned URLs for chunk transfers.

Issuing a download URL is the only access-control checkpoint for reads:
the chunk key must be signed by the key pair registered for the alias.
"""

from __future__ import annotations

import json
import logging

from sharrr.core.crypto import hash_key, load_public_key, verify_signature
from sharrr.core.errors import AliasNotFoundError, SignatureInvalidError
from sharrr.server.database import Database
from sharrr.server.storage import OCTET_STREAM, ObjectStore, validate_name

logger = logging.getLogger(__name__)

UPLOAD_URL_EXPIRY = 15 * 60  # seconds
DOWNLOAD_URL_EXPIRY = 60 * 60  # seconds


class UrlBroker:
    """Issues presigned upload and download URLs."""

    def __init__(
        self,
        db: Database,
        storage: ObjectStore,
        default_bucket: str,
        upload_expiry: int = UPLOAD_URL_EXPIRY,
        download_expiry: int = DOWNLOAD_URL_EXPIRY,
    ) -> None:
        self._db = db
        self._storage = storage
        self._default_bucket = default_bucket
        self._upload_expiry = upload_expiry
        self._download_expiry = download_expiry

    @property
    def default_bucket(self) -> str:
        return self._default_bucket

    def issue_upload_url(
        self,
        key: str,
        bucket: str | None = None,
        content_type: str = OCTET_STREAM,
    ) -> str:
        """Issue a write URL for a single object.

        Raises:
            ValueError: If the bucket or key is invalid.
        """
        bucket = validate_name(bucket or self._default_bucket, "bucket")
        url = self._storage.presign_put(
            bucket, validate_name(key), content_type, expires_in=self._upload_expiry
        )
        logger.info(f"Generated presigned upload URL for {key[:8]}... in {bucket}")
        return url

    def issue_download_url(
        self,
        key: str,
        alias: str,
        bucket: str,
        key_hash: str,
        signature: str,
    ) -> str:
        """Issue a read URL after checking the chunk belongs to the alias.

        Raises:
            AliasNotFoundError: If no share is registered under the alias.
            SignatureInvalidError: If the signature, key hash or bucket
                does not match the share.
        """
        secret = self._db.get_secret(alias)
        if secret is None:
            raise AliasNotFoundError()

        try:
            public_key = load_public_key(secret.public_key)
        except ValueError as e:
            logger.warning(f"Stored public key for an alias is invalid: {e}")
            raise SignatureInvalidError() from e

        if not verify_signature(key, signature, public_key):
            raise SignatureInvalidError()
        if hash_key(key) != key_hash:
            raise SignatureInvalidError()

        reference = json.loads(secret.file_reference)
        if reference.get("bucket") != bucket:
            raise SignatureInvalidError()

        url = self._storage.presign_get(
            validate_name(bucket, "bucket"),
            validate_name(key_hash),
            expires_in=self._download_expiry,
        )
        logger.info(f"Generated download URL for {key_hash[:8]}... in {bucket}")
        return url
