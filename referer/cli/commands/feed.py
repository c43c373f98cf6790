"""Citation feed commands for the Referer CLI."""

from urllib.parse import urlparse

import click
from rich.console import Console
from rich.table import Table

from referer.app.services.timestamps import format_timestamp
from referer.app.services.youtube_urls import extract_youtube_id

from ..api import ApiError, RefererApi
from ..config import Config

console = Console()

ATTRIBUTION_STYLES = {
    "creator": "[green]creator[/green]",
    "community": "[cyan]community[/cyan]",
    "unattributed": "[dim]unattributed[/dim]",
}


def _host(url: str) -> str:
    hostname = urlparse(url).hostname
    if not hostname:
        return url
    return hostname.removeprefix("www.")


@click.command()
@click.argument("video")
def feed(video: str):
    """Show the citations registered for a YouTube video (URL or id)."""
    youtube_id = extract_youtube_id(video)
    if youtube_id is None:
        console.print(f"[red]Not a YouTube URL or video id: {video}[/red]")
        raise SystemExit(1)

    api = RefererApi(Config.load())
    try:
        data = api.feed(youtube_id)
    except ApiError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    sources = data.get("sources") or []
    if not data.get("video") or not sources:
        console.print(f"[yellow]No registered sources for {youtube_id}[/yellow]")
        return

    video_info = data["video"]
    table = Table(title=f"{video_info.get('title', youtube_id)} ({len(sources)} sources)")
    table.add_column("Time", justify="right", style="bold")
    table.add_column("By")
    table.add_column("Claim")
    table.add_column("Source", style="blue")

    for source in sources:
        attribution = source.get("attribution", "unattributed")
        table.add_row(
            format_timestamp(int(source.get("timestamp_seconds", 0))),
            ATTRIBUTION_STYLES.get(attribution, attribution),
            source.get("claim", ""),
            _host(source.get("source_url", "")),
        )

    console.print(table)

    creator = data.get("creator")
    if creator and creator.get("youtube_channel_name"):
        console.print(f"Verified creator: [green]{creator['youtube_channel_name']}[/green]")
