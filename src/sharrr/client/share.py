"""Share links and the end-to-end share/receive workflow.

A share link has the form ``<server>/s/<alias>#<key>``. The key lives in
the URL fragment, which browsers and HTTP clients never send to the server.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from urllib.parse import urlsplit

from sharrr.client.api import BrokerClient
from sharrr.client.download import ByteSink, FileDownloader
from sharrr.client.progress import ProgressCallback
from sharrr.client.transport import ChunkTransport
from sharrr.client.upload import FileUploader
from sharrr.core.chunking import FileSource
from sharrr.core.config import TransferConfig
from sharrr.core.crypto import (
    decode_key,
    encode_key,
    export_public_key,
    generate_master_key,
    generate_signing_key_pair,
)
from sharrr.core.types import SecretFile, UploadResult

logger = logging.getLogger(__name__)

ALIAS_BYTES = 9


def generate_alias() -> str:
    """Generate a random, URL-safe share alias."""
    return secrets.token_urlsafe(ALIAS_BYTES)


def build_share_link(server_url: str, alias: str, key: bytes) -> str:
    """Build the link a recipient needs to download a share."""
    return f"{server_url.rstrip('/')}/s/{alias}#{encode_key(key)}"


@dataclass(frozen=True)
class ShareLink:
    """Parsed share link."""

    server_url: str
    alias: str
    key: bytes


def parse_share_link(link: str) -> ShareLink:
    """Split a share link into server URL, alias and decryption key.

    Raises:
        ValueError: If the link is malformed.
    """
    parts = urlsplit(link)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Not an absolute URL: {link}")
    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 2 or segments[-2] != "s":
        raise ValueError(f"Not a share link: {link}")
    if not parts.fragment:
        raise ValueError("Share link is missing its decryption key")
    prefix = "/".join(segments[:-2])
    server_url = f"{parts.scheme}://{parts.netloc}" + (f"/{prefix}" if prefix else "")
    return ShareLink(server_url=server_url, alias=segments[-1], key=decode_key(parts.fragment))


@dataclass(frozen=True)
class ShareResult:
    """Outcome of sharing a file."""

    alias: str
    link: str
    upload: UploadResult


async def share_file(
    client: BrokerClient,
    source: FileSource,
    bucket: str,
    config: TransferConfig | None = None,
    progress_callback: ProgressCallback | None = None,
) -> ShareResult:
    """Encrypt and upload a file, then register it under a new alias."""
    master_key = generate_master_key()
    private_key, public_key = generate_signing_key_pair()

    uploader = FileUploader(ChunkTransport(client), config, progress_callback)
    result = await uploader.upload_file(source, bucket, master_key, private_key)

    alias = generate_alias()
    await client.create_secret(alias, export_public_key(public_key), result.meta, result.reference)
    logger.info(f"Registered {source.name} as {alias}")

    return ShareResult(
        alias=alias,
        link=build_share_link(client.server_url, alias, master_key),
        upload=result,
    )


async def open_share(client: BrokerClient, link: ShareLink) -> SecretFile:
    """Rebuild the recipient-side view of a share."""
    meta, reference = await client.get_secret(link.alias)
    return SecretFile(alias=link.alias, decryption_key=link.key, meta=meta, reference=reference)


async def receive_file(
    client: BrokerClient,
    secret_file: SecretFile,
    sink: ByteSink,
    progress_callback: ProgressCallback | None = None,
) -> int:
    """Download a share into ``sink`` and return the number of bytes written."""
    downloader = FileDownloader(ChunkTransport(client), progress_callback)
    return await downloader.download_to(secret_file, sink)
