"""Policy inspection command."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich.markup import escape

from codebox.cli.utils import err_console
from codebox.exceptions import PolicyLoadError
from codebox.sandbox.loader import load_policy


def policy(
    policy_file: Annotated[
        Optional[Path],  # noqa: UP007
        typer.Option("--policy", "-p", help="Policy file (default: sandbox.policy.yaml)"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print as JSON instead of YAML"),
    ] = False,
) -> None:
    """Show the effective sandbox policy.

    Validates the policy file; prints the built-in default policy when
    the file does not exist.
    """
    try:
        effective = load_policy(policy_file)
    except PolicyLoadError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    document = effective.to_document()
    if as_json:
        typer.echo(json.dumps(document, indent=2))
    else:
        typer.echo(yaml.safe_dump(document, sort_keys=False), nl=False)
