"""Export commands for the Referer CLI."""

import click
from rich.console import Console

from ..api import ApiError, RefererApi
from ..config import Config

console = Console()


@click.command()
@click.argument("video_id")
@click.option("--links", is_flag=True, help="Plain `time → url` lines instead of the block")
def export(video_id: str, links: bool):
    """Print the export text for one of your videos."""
    api = RefererApi(Config.load())
    try:
        data = api.export(video_id, "links" if links else "description")
    except ApiError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    text = data.get("text", "")
    if not text:
        console.print("[yellow]No sources registered yet[/yellow]")
        return

    # Plain echo so the output can be piped or copied verbatim.
    click.echo(text)
