"""
Command-line entry points for the rate relay.

``serve`` runs the relay server under uvicorn; ``quote`` runs the client once
and writes the artifact.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from rate_relay.client import RelayClient
from rate_relay.core.config import get_settings
from rate_relay.core.errors import RelayError
from rate_relay.core.logging import init_logging

app = typer.Typer(help="USD-BRL rate relay")
logger = logging.getLogger("rate_relay.cli")

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Run the relay server."""
    settings = get_settings()
    uvicorn.run(
        "rate_relay.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command()
def quote(
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Relay /cotacao URL"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Artifact path (overwritten)"
    ),
):
    """Fetch the current bid from the relay and write it to the artifact."""
    settings = get_settings()
    init_logging(debug=settings.debug, stream=sys.stderr)
    client = RelayClient(url or settings.relay_url, output or settings.artifact_path)
    try:
        path = asyncio.run(client.run())
    except RelayError as e:
        logger.error("quote failed: %s", e)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_CODE_FAIL)
    typer.echo(str(path))


if __name__ == "__main__":
    app()
