"""Transfer commands for the sharrr CLI.

Commands:
- upload: Encrypt and share a file
- download: Download and decrypt a shared file
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
import httpx

from sharrr.cli.config import resolve_bucket, resolve_server_url
from sharrr.client.api import APIError, BrokerClient, NotFoundError
from sharrr.client.download import FileSink
from sharrr.client.share import (
    ShareResult,
    open_share,
    parse_share_link,
    receive_file,
    share_file,
)
from sharrr.core.chunking import PathSource
from sharrr.core.config import ServerConfig, TransferConfig
from sharrr.core.errors import TransferError


class ProgressLine:
    """Single-line percentage display on stdout."""

    def __init__(self, label: str, enabled: bool = True) -> None:
        self._label = label
        self._enabled = enabled
        self._last = -1

    def __call__(self, progress: float) -> None:
        percent = int(progress * 100)
        if not self._enabled or percent == self._last:
            return
        self._last = percent
        click.echo(f"\r  {self._label}: {percent:3d}%", nl=False)

    def finish(self) -> None:
        if self._enabled and self._last >= 0:
            click.echo()


async def _upload(
    path: Path,
    server_url: str,
    bucket: str,
    progress: ProgressLine,
) -> ShareResult:
    source = PathSource(path)
    async with BrokerClient(ServerConfig(server_url=server_url)) as client:
        return await share_file(
            client,
            source,
            bucket,
            config=TransferConfig.from_env(),
            progress_callback=progress,
        )


async def _download(link: str, output: Path | None, progress: ProgressLine) -> Path:
    share = parse_share_link(link)
    async with BrokerClient(ServerConfig(server_url=share.server_url)) as client:
        secret_file = await open_share(client, share)
        target = output or Path.cwd() / Path(secret_file.name).name
        if target.is_dir():
            target = target / Path(secret_file.name).name
        await receive_file(client, secret_file, FileSink(target), progress_callback=progress)
        return target


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--server", "-s", default=None, help="Server URL (default: from config).")
@click.option("--bucket", "-b", default=None, help="Storage bucket (default: sharrr).")
@click.option("--no-progress", is_flag=True, help="Disable the progress display.")
def upload(file: Path, server: str | None, bucket: str | None, no_progress: bool) -> None:
    """Encrypt FILE, upload it and print a share link.

    The decryption key is only part of the printed link and never sent
    to the server.
    """
    server_url = resolve_server_url(server)
    if not server_url:
        click.echo(
            "Error: No server configured. Use --server or 'sharrr config set-server'.",
            err=True,
        )
        sys.exit(1)

    progress = ProgressLine("Uploading", enabled=not no_progress)
    try:
        result = asyncio.run(_upload(file, server_url, resolve_bucket(bucket), progress))
    except (TransferError, APIError, httpx.HTTPError) as e:
        progress.finish()
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    progress.finish()

    chunks = len(result.upload.reference.chunks)
    click.echo(f"Uploaded {result.upload.meta.name} ({chunks} chunk(s))")
    click.echo(result.link)


@click.command()
@click.argument("link")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file or directory (default: original name in the current directory).",
)
@click.option("--no-progress", is_flag=True, help="Disable the progress display.")
def download(link: str, output: Path | None, no_progress: bool) -> None:
    """Download and decrypt the file behind a share LINK."""
    progress = ProgressLine("Downloading", enabled=not no_progress)
    try:
        target = asyncio.run(_download(link, output, progress))
    except NotFoundError:
        progress.finish()
        click.echo("Error: This share does not exist.", err=True)
        sys.exit(1)
    except (TransferError, APIError, httpx.HTTPError, ValueError) as e:
        progress.finish()
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    progress.finish()

    click.echo(f"Saved to {target}")
