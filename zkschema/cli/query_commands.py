"""Query CLI commands.

Compiles query builder state files into ZK queries, iden3comm requests or
per-condition query objects, optionally checking condition operators against a
JSON Schema and taking the context URL and type from a fetched schema document.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from zkschema.cli.config import ZkSchemaConfig
from zkschema.cli.files import dump_json, load_json_object, write_json
from zkschema.sdk.context import (
    extract_jsonld_context,
    extract_schema_type,
    is_valid_http_url,
    is_valid_ipfs_url,
)
from zkschema.sdk.exceptions import ZkSchemaError
from zkschema.sdk.importer import import_json_schema_file
from zkschema.sdk.models import Attribute, ProofType, QueryBuilderState
from zkschema.sdk.query import (
    build_query,
    build_query_objects,
    build_request,
    check_condition_operators,
    describe_condition,
    get_available_circuits,
    validate_query_state,
)

app = typer.Typer(name="query", help="Zero-knowledge query commands")
console = Console()


class OutputMode(str, Enum):
    """Shape of the compiled query output."""
    QUERY = "query"
    REQUEST = "request"
    OBJECTS = "objects"


@app.command("build")
def build_command(
    state_file: Path = typer.Argument(..., help="Query builder state file"),
    mode: OutputMode = typer.Option(OutputMode.REQUEST, "--mode", "-m", help="Output shape"),
    verifier_did: str | None = typer.Option(None, "--verifier-did", help="Verifier DID for on-chain requests"),
    schema_file: Path | None = typer.Option(None, "--schema-file", "-s", help="JSON Schema for operator checks"),
    context_file: Path | None = typer.Option(
        None, "--context-file", "-c", help="Fetched schema document supplying context URL and type"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file")
) -> None:
    """Compile a query builder state file."""
    config = ZkSchemaConfig()
    state = _load_state(state_file)
    if context_file:
        state = _apply_context(state, context_file)

    attributes = _load_attributes(schema_file) if schema_file else None
    if attributes:
        problems = check_condition_operators(state.conditions, attributes)
        if problems:
            for problem in problems:
                console.print(f"[red]✗ {problem}[/red]")
            raise typer.Exit(1)

    if mode == OutputMode.QUERY:
        result = build_query(state)
    elif mode == OutputMode.REQUEST:
        result = build_request(state, verifier_did or config.verifier_did, config.request_reason)
    else:
        result = [obj.to_json_dict() for obj in build_query_objects(state)]

    if not result:
        _report_not_ready(state)

    if output:
        write_json(output, result, config.json_indent)
        console.print(f"[green]Query written to {output}[/green]")
    else:
        print(dump_json(result, config.json_indent))  # Use print() to avoid rich formatting


@app.command("describe")
def describe_command(
    state_file: Path = typer.Argument(..., help="Query builder state file"),
    schema_file: Path | None = typer.Option(None, "--schema-file", "-s", help="JSON Schema for attribute titles")
) -> None:
    """Print one line per condition."""
    state = _load_state(state_file)
    attributes = _load_attributes(schema_file) if schema_file else None

    if not state.conditions:
        console.print("No conditions")
        return
    for index, condition in enumerate(state.conditions, start=1):
        console.print(f"{index}. {describe_condition(condition, attributes)}", highlight=False)
    if attributes:
        for problem in check_condition_operators(state.conditions, attributes):
            console.print(f"[yellow]! {problem}[/yellow]")


@app.command("circuits")
def circuits_command(
    proof_type: ProofType = typer.Option(ProofType.SIG, "--proof-type", "-p", help="Proof type")
) -> None:
    """List circuits available for a proof type."""
    for circuit in get_available_circuits(proof_type):
        print(circuit.value)


def _load_state(state_file: Path) -> QueryBuilderState:
    """Load and validate a query builder state file."""
    try:
        return QueryBuilderState.model_validate(load_json_object(state_file, "State"))
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Error loading state file: {e}[/red]")
        raise typer.Exit(1)


def _report_not_ready(state: QueryBuilderState) -> None:
    """Explain why no query could be built and exit."""
    console.print("[yellow]Query is not ready[/yellow]")
    for problem in validate_query_state(state) or ["Add at least one valid condition"]:
        console.print(f"  - {problem}")
    raise typer.Exit(1)


def _load_attributes(schema_file: Path) -> list[Attribute]:
    """Import the attribute tree of a JSON Schema file."""
    try:
        return import_json_schema_file(schema_file).attributes
    except ZkSchemaError as e:
        console.print(f"[red]Import error: {e}[/red]")
        raise typer.Exit(1)


def _apply_context(state: QueryBuilderState, context_file: Path) -> QueryBuilderState:
    """Fill a missing context URL and schema type from a fetched schema document."""
    try:
        document = load_json_object(context_file, "Context")
    except ValueError as e:
        console.print(f"[red]Error loading context file: {e}[/red]")
        raise typer.Exit(1)

    updates = {}
    if not state.json_ld_context_url:
        url = extract_jsonld_context(document)
        if url and (is_valid_http_url(url) or is_valid_ipfs_url(url)):
            updates["json_ld_context_url"] = url
        else:
            console.print(f"[yellow]No usable JSON-LD context URL in {context_file}[/yellow]")
    if not state.schema_type:
        schema_type = extract_schema_type(document)
        if schema_type:
            updates["schema_type"] = schema_type
    return state.model_copy(update=updates)
