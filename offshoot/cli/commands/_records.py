"""Shared record loading for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from offshoot.core.errors import MalformedPersistedData
from offshoot.core.serialization import parse_record

console = Console()


def read_record(path: Path) -> dict[str, Any]:
    """Read a JSON attachment record, exiting with code 1 on failure."""
    if not path.exists():
        console.print(f"[bold red]Record not found:[/bold red] {path}")
        raise typer.Exit(code=1)
    try:
        return parse_record(path.read_text(encoding="utf-8"))
    except MalformedPersistedData as exc:
        console.print(f"[bold red]Invalid record:[/bold red] {exc}")
        raise typer.Exit(code=1)
