"""Command line entry points for Life Reveal."""

from typer import Typer

from ..configuration.cli import config_app
from .notifications import notifications_app


cli = Typer(help="Life Reveal command line tools")
cli.add_typer(notifications_app, name="notifications")
cli.add_typer(config_app, name="config")

__all__ = ["cli", "config_app", "notifications_app"]
