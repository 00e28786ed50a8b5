"""Client module - Chunk transport, upload and download orchestration."""

from sharrr.client.api import APIError, BrokerClient, ConflictError, ForbiddenError, NotFoundError
from sharrr.client.download import ByteSink, FileDownloader, FileSink
from sharrr.client.progress import ProgressTracker
from sharrr.client.retry import RetryPolicy, RetryTransport
from sharrr.client.transport import (
    ChunkStream,
    ChunkTransport,
    DirectUploadStrategy,
    ProxyUploadStrategy,
    UploadStrategy,
)
from sharrr.client.upload import FileUploader, run_bounded

__all__ = [
    "APIError",
    "BrokerClient",
    "ByteSink",
    "ChunkStream",
    "ChunkTransport",
    "ConflictError",
    "DirectUploadStrategy",
    "FileDownloader",
    "FileSink",
    "FileUploader",
    "ForbiddenError",
    "NotFoundError",
    "ProgressTracker",
    "ProxyUploadStrategy",
    "RetryPolicy",
    "RetryTransport",
    "UploadStrategy",
    "run_bounded",
]
