"""CLI package for LocalMind.

This package provides the command-line interface using Typer.
The CLI is a thin wrapper around the library API.
"""

from localmind.cli.app import app, console

__all__ = ["app", "console"]
