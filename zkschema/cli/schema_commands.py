"""Schema CLI commands.

Provides JSON Schema and JSON-LD Context generation from a tree file,
JSON Schema import back into a tree file, and tree validation.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from zkschema.cli.config import ZkSchemaConfig
from zkschema.cli.files import dump_json, load_json_object, write_json
from zkschema.sdk.exceptions import ZkSchemaError
from zkschema.sdk.generator import (
    generate_json_schema,
    generate_jsonld_context,
    validate_non_merklized_attributes,
)
from zkschema.sdk.importer import import_json_schema_file
from zkschema.sdk.models import CredentialType, SchemaDraft
from zkschema.sdk.tree import validate_attribute_tree, validate_schema_metadata

app = typer.Typer(name="schema", help="Credential schema commands")
console = Console()


@app.command("generate")
def generate_command(
    tree_file: Path = typer.Argument(..., help="Tree file with metadata and attributes"),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Directory for schema.json and context.jsonld"),
    jsonld_url: str | None = typer.Option(None, "--jsonld-url", help="URL for $metadata.jsonLdContext")
) -> None:
    """Generate JSON Schema and JSON-LD Context from a tree file."""
    config = ZkSchemaConfig()
    draft = _load_draft(tree_file)
    _check_non_merklized(draft)

    try:
        json_schema = generate_json_schema(
            draft.metadata, draft.attributes, jsonld_url or config.jsonld_context_url
        )
        jsonld_context = generate_jsonld_context(draft.metadata, draft.attributes)
    except ZkSchemaError as e:
        console.print(f"[red]Generation error: {e}[/red]")
        raise typer.Exit(1)

    if output_dir:
        write_json(output_dir / "schema.json", json_schema, config.json_indent)
        write_json(output_dir / "context.jsonld", jsonld_context, config.json_indent)
        console.print(f"[green]Schema {draft.metadata.schema_type} generated[/green]")
        console.print(f"JSON Schema: {output_dir / 'schema.json'}")
        console.print(f"JSON-LD Context: {output_dir / 'context.jsonld'}")
    else:
        documents = {"jsonSchema": json_schema, "jsonLdContext": jsonld_context}
        print(dump_json(documents, config.json_indent))  # Use print() to avoid rich formatting


@app.command("import")
def import_command(
    schema_file: Path = typer.Argument(..., help="JSON Schema file to import"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output tree file")
) -> None:
    """Import a JSON Schema into a tree file."""
    config = ZkSchemaConfig()
    try:
        result = import_json_schema_file(schema_file)
    except ZkSchemaError as e:
        console.print(f"[red]Import error: {e}[/red]")
        raise typer.Exit(1)

    draft = SchemaDraft(metadata=result.metadata, attributes=result.attributes)
    if output:
        write_json(output, draft.to_json_dict(), config.json_indent)
        console.print(f"[green]Schema imported to {output}[/green]")
    else:
        print(dump_json(draft.to_json_dict(), config.json_indent))


@app.command("validate")
def validate_command(
    tree_file: Path = typer.Argument(..., help="Tree file to validate")
) -> None:
    """Validate schema metadata and attribute tree."""
    draft = _load_draft(tree_file)

    problems = validate_schema_metadata(draft.metadata) + validate_attribute_tree(draft.attributes)
    if draft.metadata.credential_type == CredentialType.NON_MERKLIZED:
        result = validate_non_merklized_attributes(draft.attributes)
        if not result.valid:
            problems.append(result.error or "Non-merklized check failed")

    if problems:
        for problem in problems:
            console.print(f"[red]✗ {problem}[/red]")
        raise typer.Exit(1)
    console.print("[green]Schema is valid[/green]")


def _load_draft(tree_file: Path) -> SchemaDraft:
    """Load and validate a tree file."""
    try:
        return SchemaDraft.model_validate(load_json_object(tree_file, "Tree"))
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Error loading tree file: {e}[/red]")
        raise typer.Exit(1)


def _check_non_merklized(draft: SchemaDraft) -> None:
    """Refuse generation when a non-merklized schema has too many attributes."""
    if draft.metadata.credential_type != CredentialType.NON_MERKLIZED:
        return
    result = validate_non_merklized_attributes(draft.attributes)
    if not result.valid:
        console.print(f"[red]Error: {result.error}[/red]")
        raise typer.Exit(1)
