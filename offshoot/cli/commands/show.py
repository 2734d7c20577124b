"""``offshoot show FILE`` — render an attachment record as a tree."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import typer
from rich.markup import escape
from rich.tree import Tree

from offshoot.cli.commands._records import console, read_record
from offshoot.core.errors import MalformedPersistedData
from offshoot.core.serialization import from_plain_data, split_record, upgrade_legacy
from offshoot.models.files import StoredFile


def _file_label(file: StoredFile) -> str:
    size = f" [dim]{file.size} bytes[/dim]" if file.size is not None else ""
    return f"[cyan]{escape(file.id)}[/cyan] [green]({escape(file.storage)})[/green]{size}"


def build_tree(label: str, node: Any) -> Tree:
    """Build a Rich tree mirroring a derivatives tree."""
    tree = Tree(label)
    _add_children(tree, node)
    return tree


def _add_children(parent: Tree, node: Any) -> None:
    items = node.items() if isinstance(node, Mapping) else enumerate(node)
    for key, value in items:
        name = escape(f"[{key}]" if isinstance(key, int) else str(key))
        if isinstance(value, StoredFile):
            parent.add(f"[bold]{name}[/bold]: {_file_label(value)}")
        else:
            _add_children(parent.add(f"[bold]{name}[/bold]"), value)


def show_cmd(
    record_path: Path = typer.Argument(..., help="Path to a JSON attachment record."),
    legacy: bool = typer.Option(
        False,
        "--legacy",
        "-L",
        help="Accept legacy flat or versions-style records.",
    ),
) -> None:
    """Show the primary file and derivatives tree of a persisted record."""
    record = read_record(record_path)
    if legacy:
        record = upgrade_legacy(record)

    try:
        file_data, derivatives_data = split_record(record)
        file = StoredFile.from_data(file_data) if file_data else None
        derivatives = from_plain_data(derivatives_data)
    except MalformedPersistedData as exc:
        console.print(f"[bold red]Invalid record:[/bold red] {exc}")
        raise typer.Exit(code=1)

    label = _file_label(file) if file else "[dim]no file attached[/dim]"
    console.print(build_tree(label, derivatives))
