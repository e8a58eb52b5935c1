"""Runtime availability command."""

import asyncio

import typer
from rich.markup import escape
from rich.table import Table

from codebox.cli.utils import console
from codebox.sandbox.runner import LocalContainerRunner


def check() -> None:
    """Check that the container runtime and sandbox image are available."""
    status = asyncio.run(LocalContainerRunner().check_runtime())

    table = Table(title="Sandbox Runtime", show_header=True)
    table.add_column("Component", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Details")

    def _mark(ok: bool) -> str:
        return "[green]ok[/green]" if ok else "[red]missing[/red]"

    table.add_row(
        f"runtime ({status['runtime']})",
        _mark(status["runtime_available"]),
        escape(status.get("runtime_version", "")),
    )
    table.add_row("image", _mark(status["image_available"]), escape(status["image"]))
    console.print(table)

    for error in status["errors"]:
        console.print(f"[yellow]- {escape(error)}[/yellow]")

    if not status["runtime_available"]:
        raise typer.Exit(code=1)
