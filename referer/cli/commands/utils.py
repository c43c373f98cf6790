"""Utility commands for the Referer CLI."""

from typing import Optional

import click
from rich.console import Console

from referer.app.services.timestamps import (
    MalformedTimestampError,
    format_timestamp,
    is_valid_timestamp,
    parse_timestamp,
)

from ..config import Config, config_path

console = Console()


@click.command()
@click.argument("text")
def timestamp(text: str):
    """Validate a timestamp and print it normalised with its offset in seconds."""
    if not is_valid_timestamp(text):
        console.print(f"[red]Invalid timestamp: {text}[/red] (use seconds, MM:SS or H:MM:SS)")
        raise SystemExit(1)

    try:
        seconds = parse_timestamp(text)
    except MalformedTimestampError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    console.print(f"{format_timestamp(seconds)} [dim]({seconds}s)[/dim]")


@click.command()
@click.option("--api-url", help="Base URL of the Referer API")
@click.option("--user-id", help="User id sent as X-Referer-User")
def config(api_url: Optional[str], user_id: Optional[str]):
    """Show or update the CLI configuration."""
    current = Config.load()

    if api_url is None and user_id is None:
        console.print(f"[bold]Config file:[/bold] {config_path()}")
        console.print(f"  api_base_url: {current.api_base_url}")
        console.print(f"  user_id: {current.user_id or '(not set)'}")
        return

    if api_url is not None:
        current.api_base_url = api_url.rstrip("/")
    if user_id is not None:
        current.user_id = user_id.strip() or None

    current.save()
    console.print(f"[green]Saved config to {config_path()}[/green]")
