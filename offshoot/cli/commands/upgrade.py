"""``offshoot upgrade FILE`` — rewrite a legacy record in the nested layout."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from offshoot.cli.commands._records import console, read_record
from offshoot.core.serialization import detect_format, upgrade_legacy


def upgrade_cmd(
    record_path: Path = typer.Argument(..., help="Path to a JSON attachment record."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the upgraded record here instead of printing it.",
    ),
) -> None:
    """Convert a flat or versions-style record into the current layout."""
    record = read_record(record_path)
    layout = detect_format(record)
    upgraded = json.dumps(upgrade_legacy(record), indent=2, sort_keys=True)

    if output is None:
        typer.echo(upgraded)
        return

    output.write_text(upgraded + "\n", encoding="utf-8")
    console.print(
        f"[green]Upgraded[/green] {record_path} ([bold]{layout.value}[/bold] layout) -> {output}"
    )
