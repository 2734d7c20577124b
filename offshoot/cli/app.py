"""Main Typer application — imports and registers all CLI commands.

Entry point: ``offshoot`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from offshoot.cli.commands.show import show_cmd
from offshoot.cli.commands.upgrade import upgrade_cmd
from offshoot.config import config
from offshoot.logging_setup import configure_logging

app = typer.Typer(
    name="offshoot",
    help="Offshoot: inspect and upgrade derivative file records.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(config.log_level, "--log-level", help="Logging level."),
) -> None:
    configure_logging(log_level)


# Register subcommands
app.command(name="show", help="Show the derivatives tree of a record.")(show_cmd)
app.command(name="upgrade", help="Upgrade a legacy record to the nested layout.")(upgrade_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
