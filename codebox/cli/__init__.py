"""CLI application setup using Typer.

Provides the command-line interface for running sandboxed snippets.
"""

from codebox.cli.main import app

__all__ = ["app"]
