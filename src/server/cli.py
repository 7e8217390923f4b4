"""Click CLI for running and exercising the LINE webhook relay."""

from __future__ import annotations

from pathlib import Path

import click

from src.webhook.line import LineClient


@click.group()
def cli() -> None:
    """LINE to Gemini webhook relay."""


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address.")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port.")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str, port: int, reload: bool) -> None:
    """Serve the webhook with configuration read from the environment."""
    import uvicorn

    uvicorn.run(
        "src.server.app:create_app_from_env",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@cli.command()
@click.argument("body_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--secret",
    envvar="LINE_CHANNEL_SECRET",
    required=True,
    help="Channel secret (defaults to $LINE_CHANNEL_SECRET).",
)
def sign(body_file: Path, secret: str) -> None:
    """Print the x-line-signature value for BODY_FILE's exact bytes."""
    client = LineClient(channel_secret=secret, channel_access_token="")
    click.echo(client.compute_signature(body_file.read_bytes()))
