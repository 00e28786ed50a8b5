"""Server command for the sharrr CLI.

Commands:
- serve: Run the reference server
"""

from __future__ import annotations

import click


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", "-p", default=8000, show_default=True, type=int, help="Bind port.")
def serve(host: str, port: int) -> None:
    """Run the sharrr server.

    Storage, database and logging are configured through SHARRR_*
    environment variables.
    """
    import uvicorn

    uvicorn.run("sharrr.server.app:app_factory", factory=True, host=host, port=port)
