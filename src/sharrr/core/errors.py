"""Error taxonomy for chunked transfers.

Path-local failures (direct upload, presigned URL issuance on upload) are
absorbed by the transport and turned into a fallback. Everything else is
raised to the job caller and aborts the whole job.
"""

from __future__ import annotations


class TransferError(Exception):
    """Base exception for transfer errors."""


class EmptyFileError(TransferError):
    """The file has zero bytes and cannot be shared."""

    def __init__(
        self, message: str = "Empty file (zero bytes). Please select another file."
    ) -> None:
        super().__init__(message)


class FileTooLargeError(TransferError):
    """The file exceeds the configured maximum size."""

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(f"File is too large: {size} bytes (maximum {max_size} bytes)")


class PresignedUrlError(TransferError):
    """The URL broker failed to issue a presigned URL."""


class DirectUploadError(TransferError):
    """Direct upload to the object store failed."""


class ChunkUploadFailed(TransferError):
    """Both the direct and the proxy path failed for a chunk."""

    def __init__(self, message: str, index: int | None = None, key_hash: str | None = None) -> None:
        self.index = index
        self.key_hash = key_hash
        super().__init__(message)


class ChunkUnavailable(TransferError):
    """A chunk could not be retrieved; the file may no longer exist."""

    def __init__(self, message: str = "Couldn't retrieve file - it may no longer exist.") -> None:
        super().__init__(message)


class AuthorizationError(TransferError):
    """Access to a chunk was refused.

    The message is deliberately the same for every cause so that callers
    cannot probe which aliases exist.
    """

    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(message)


class AliasNotFoundError(AuthorizationError):
    """No share is registered under the alias."""


class SignatureInvalidError(AuthorizationError):
    """The chunk signature does not match the alias' public key."""


class DecryptionError(TransferError):
    """Ciphertext failed authentication (wrong key or tampered data)."""


class TransferCancelledError(TransferError):
    """The caller cancelled the transfer."""
