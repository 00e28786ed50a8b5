"""Command-line interface for sharrr.

This module provides the main CLI entry point and assembles all commands.

Commands:
- upload: Encrypt and share a file
- download: Download and decrypt a shared file
- serve: Run the reference server
- config: Manage CLI configuration
"""

from __future__ import annotations

import click

from sharrr.cli.config import (
    config_group,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from sharrr.cli.server import serve
from sharrr.cli.transfer import download, upload


@click.group()
@click.version_option(package_name="sharrr")
def cli() -> None:
    """sharrr - End-to-end encrypted file sharing."""


# Transfer commands
cli.add_command(upload)
cli.add_command(download)

# Server command
cli.add_command(serve)

# Configuration
cli.add_command(config_group)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
