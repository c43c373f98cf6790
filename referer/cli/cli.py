"""Main CLI entry point for Referer."""

import click

from .commands import export, feed, utils


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Referer - timestamped sources for YouTube videos."""
    pass


# Feed commands
main.add_command(feed.feed)

# Export commands
main.add_command(export.export)

# Utility commands
main.add_command(utils.timestamp)
main.add_command(utils.config)


if __name__ == "__main__":
    main()
