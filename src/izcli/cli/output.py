"""Terminal output helpers shared by the iz commands."""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from izcli.config import ColorMode
from izcli.exceptions import ConfirmationDeclined, IzError


def get_console(color: ColorMode = ColorMode.AUTO, stderr: bool = False) -> Console:
    if color == ColorMode.NEVER:
        return Console(stderr=stderr, no_color=True, highlight=False)
    if color == ColorMode.ALWAYS:
        return Console(stderr=stderr, force_terminal=True)
    return Console(stderr=stderr, highlight=False)


def print_table(
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    color: ColorMode = ColorMode.AUTO,
) -> None:
    table = Table(box=None, header_style="bold", pad_edge=False)
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*("" if value is None else str(value) for value in row))
    get_console(color).print(table)


def print_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn iz errors into CLI output and exit codes.

    A declined confirmation prints "Cancelled" and exits 0; any other
    IzError prints "Error: ..." to stderr and exits 1.
    """
    try:
        yield
    except ConfirmationDeclined:
        typer.echo("Cancelled")
        raise typer.Exit(0)
    except IzError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
