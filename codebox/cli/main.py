"""CLI entry point.

Provides the main CLI application with commands for:
- run: Execute a shell snippet in the sandbox
- policy: Show the effective sandbox policy
- check: Check container runtime availability
"""

# Configure logging early before other imports
import codebox.logging_config  # noqa: F401

import typer

from codebox.cli.commands.check import check
from codebox.cli.commands.policy import policy
from codebox.cli.commands.run import run

app = typer.Typer(
    name="codebox",
    help="Run untrusted shell snippets in policy-driven throwaway containers",
    add_completion=False,
    no_args_is_help=True,
)

app.command()(run)
app.command()(policy)
app.command()(check)


if __name__ == "__main__":
    app()
