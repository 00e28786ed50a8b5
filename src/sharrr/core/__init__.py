"""Core module - Shared crypto, chunk planning, configuration and models."""

from sharrr.core.chunking import (
    BytesSource,
    ChunkRange,
    FileSource,
    PathSource,
    chunk_range,
    iter_chunk_ranges,
    plan_chunks,
)
from sharrr.core.config import GB, MB, ServerConfig, TransferConfig
from sharrr.core.crypto import (
    decode_key,
    decrypt_chunk,
    encode_key,
    encrypt_chunk,
    export_public_key,
    generate_master_key,
    generate_signing_key_pair,
    hash_key,
    load_public_key,
    sign_message,
    verify_signature,
)
from sharrr.core.errors import (
    AliasNotFoundError,
    AuthorizationError,
    ChunkUnavailable,
    ChunkUploadFailed,
    DecryptionError,
    DirectUploadError,
    EmptyFileError,
    FileTooLargeError,
    PresignedUrlError,
    SignatureInvalidError,
    TransferCancelledError,
    TransferError,
)
from sharrr.core.types import Chunk, FileMeta, FileReference, SecretFile, UploadResult

__all__ = [
    # Chunking
    "BytesSource",
    "ChunkRange",
    "FileSource",
    "PathSource",
    "chunk_range",
    "iter_chunk_ranges",
    "plan_chunks",
    # Config
    "GB",
    "MB",
    "ServerConfig",
    "TransferConfig",
    # Crypto
    "decode_key",
    "decrypt_chunk",
    "encode_key",
    "encrypt_chunk",
    "export_public_key",
    "generate_master_key",
    "generate_signing_key_pair",
    "hash_key",
    "load_public_key",
    "sign_message",
    "verify_signature",
    # Errors
    "AliasNotFoundError",
    "AuthorizationError",
    "ChunkUnavailable",
    "ChunkUploadFailed",
    "DecryptionError",
    "DirectUploadError",
    "EmptyFileError",
    "FileTooLargeError",
    "PresignedUrlError",
    "SignatureInvalidError",
    "TransferCancelledError",
    "TransferError",
    # Types
    "Chunk",
    "FileMeta",
    "FileReference",
    "SecretFile",
    "UploadResult",
]
