"""Configuration utilities and the config command for the sharrr CLI.

Commands:
- config set-server: Store the default server URL
- config show: Print the current configuration
"""

from __future__ import annotations

import json
from pathlib import Path

import click

DEFAULT_BUCKET = "sharrr"


def get_config_dir() -> Path:
    """Get the configuration directory for sharrr.

    Returns:
        Path to ~/.sharrr or equivalent.
    """
    return Path.home() / ".sharrr"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def resolve_server_url(server: str | None) -> str | None:
    """Pick the server URL from the command line or the config file."""
    return server or load_config().get("server_url")


def resolve_bucket(bucket: str | None) -> str:
    return bucket or load_config().get("bucket") or DEFAULT_BUCKET


@click.group("config")
def config_group() -> None:
    """Manage CLI configuration."""


@config_group.command("set-server")
@click.argument("url")
def set_server(url: str) -> None:
    """Set the default server URL."""
    if not url.startswith(("http://", "https://")):
        raise click.BadParameter("URL must start with http:// or https://", param_hint="URL")
    config = load_config()
    config["server_url"] = url.rstrip("/")
    save_config(config)
    click.echo(f"Server set to {config['server_url']}")


@config_group.command("show")
def show() -> None:
    """Print the current configuration."""
    config = load_config()
    if not config:
        click.echo("No configuration. Run 'sharrr config set-server URL' first.")
        return
    for key, value in sorted(config.items()):
        click.echo(f"{key}: {value}")
