"""Typer CLI for the zkschema credential schema and query builder.

Provides command groups: schema (generate, import, validate) and
query (build, describe, circuits).
Main entrypoint for the zkschema command-line interface.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console

from zkschema import __version__
from zkschema.cli.config import LOG_LEVELS, ZkSchemaConfig, configure_logging
from zkschema.cli.query_commands import app as query_app
from zkschema.cli.schema_commands import app as schema_app


app = typer.Typer(
    name="zkschema",
    help="Verifiable credential schema builder and zero-knowledge query compiler",
    add_completion=False,
    rich_markup_mode="rich"
)
console = Console()

app.add_typer(schema_app, name="schema", help="Credential schema commands")
app.add_typer(query_app, name="query", help="Zero-knowledge query commands")


def version_callback(show_version: bool) -> None:
    """Show version and exit."""
    if show_version:
        console.print(f"zkschema version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (overrides ZKSCHEMA_LOG_LEVEL)"
    )
) -> None:
    """zkschema CLI."""
    try:
        config = ZkSchemaConfig()
    except ValidationError as e:
        console.print(f"❌ Invalid configuration: {e}")
        raise typer.Exit(1)

    level = (log_level or config.log_level).upper()
    if level not in LOG_LEVELS:
        console.print(f"❌ Unknown log level: {log_level}")
        raise typer.Exit(1)
    configure_logging(level)


if __name__ == "__main__":
    app()
