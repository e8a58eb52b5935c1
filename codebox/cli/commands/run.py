"""Snippet execution command."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.panel import Panel
from rich.text import Text

from codebox.cli.utils import console, err_console
from codebox.sandbox.runner import LocalContainerRunner
from codebox.tools.sandboxed_code import SandboxedCodeTool

# Conventional exit status for commands killed by a deadline
TIMEOUT_EXIT_CODE = 124


def _read_code(code: str | None, file: Path | None) -> str:
    if code is not None:
        return code
    if file is not None:
        return file.read_text(encoding="utf-8")
    return sys.stdin.read()


def _build_overrides(timeout_ms: int | None, network: bool | None) -> dict[str, Any] | None:
    overrides: dict[str, Any] = {}
    if timeout_ms is not None:
        overrides["proc"] = {"timeoutMs": timeout_ms}
    if network is not None:
        overrides["net"] = {"enabled": network}
    return overrides or None


def run(
    code: Annotated[
        Optional[str],  # noqa: UP007
        typer.Argument(help="Shell snippet (read from --file or stdin when omitted)"),
    ] = None,
    file: Annotated[
        Optional[Path],  # noqa: UP007
        typer.Option("--file", "-f", help="Read the snippet from a file", exists=True, dir_okay=False),
    ] = None,
    policy_file: Annotated[
        Optional[Path],  # noqa: UP007
        typer.Option("--policy", "-p", help="Policy file (default: sandbox.policy.yaml)"),
    ] = None,
    timeout_ms: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--timeout-ms", "-t", min=1, help="Wall-clock deadline in milliseconds"),
    ] = None,
    network: Annotated[
        Optional[bool],  # noqa: UP007
        typer.Option("--network/--no-network", help="Enable or disable bridge networking"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the structured result as JSON"),
    ] = False,
) -> None:
    """Execute a shell snippet in the sandbox.

    Exits with the snippet's exit code, 124 when the deadline was reached,
    or 1 when the sandbox itself failed.
    """
    snippet = _read_code(code, file)
    if not snippet.strip():
        err_console.print("[red]No code to run.[/red]")
        raise typer.Exit(code=2)

    tool = SandboxedCodeTool(runner=LocalContainerRunner(), policy_file=policy_file)
    tool_input: dict[str, Any] = {"code": snippet}
    overrides = _build_overrides(timeout_ms, network)
    if overrides:
        tool_input["policy_overrides"] = overrides

    result = asyncio.run(tool.invoke(tool_input))

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        console.print(
            Panel(
                Text(result.content),
                title="Sandbox",
                border_style="red" if result.is_error else "green",
            )
        )

    if result.is_error:
        raise typer.Exit(code=1)
    structured = result.structured_content
    if structured.get("timedOut"):
        raise typer.Exit(code=TIMEOUT_EXIT_CODE)
    exit_code = structured.get("exitCode")
    raise typer.Exit(code=exit_code if exit_code is not None else 1)
