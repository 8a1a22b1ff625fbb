"""JSON Schema import.

Reads an externally supplied credential JSON Schema back into an attribute
tree and schema metadata. Array and null typed properties are not supported
and are dropped; the ``required`` arrays of the source are not consulted, so
every imported attribute starts as optional.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from zkschema.sdk.exceptions import SchemaImportError
from zkschema.sdk.models import (
    ROOT_ID,
    Attribute,
    AttributeConstraints,
    CredentialType,
    DataType,
    SchemaMetadata,
)
from zkschema.sdk.tree import default_credential_subject

log = logging.getLogger(__name__)

UNSUPPORTED_TYPES = ("array", "null")
NUMERIC_TYPES = (DataType.NUMBER, DataType.INTEGER)

_NUMERIC_KEYWORDS = (
    ("exclusiveMinimum", "exclusive_minimum"),
    ("maximum", "maximum"),
    ("minimum", "minimum"),
    ("exclusiveMaximum", "exclusive_maximum"),
    ("multipleOf", "multiple_of"),
)
_STRING_KEYWORDS = (
    ("minLength", "min_length"),
    ("maxLength", "max_length"),
    ("pattern", "pattern"),
)


@dataclass
class ImportResult:
    """Metadata and attribute tree read from a JSON Schema."""
    metadata: SchemaMetadata
    attributes: list[Attribute]


def import_json_schema(schema_data: Any) -> ImportResult:
    """Import a credential JSON Schema.

    Args:
        schema_data: Parsed JSON document

    Returns:
        ImportResult with a fresh ``credentialSubject`` root

    Raises:
        SchemaImportError: If the document is not an object, has no
            ``credentialSubject`` object, or its properties are not an object
    """
    if not isinstance(schema_data, dict):
        raise SchemaImportError("Invalid schema format")

    metadata = _extract_metadata(schema_data)
    credential_subject = _credential_subject(schema_data)

    subject_properties = credential_subject.get("properties", {})
    if subject_properties is None:
        subject_properties = {}
    if not isinstance(subject_properties, dict):
        raise SchemaImportError("credentialSubject properties must be an object")

    root = default_credential_subject(
        title=_text(credential_subject.get("title"), "Credential subject"),
        description=_text(credential_subject.get("description"), "Stores the data of the credential"),
    )
    # The source id property is always replaced by the system attribute
    children = [root.children[0]] if root.children else []
    for name, prop in subject_properties.items():
        if name == "id":
            continue
        attr = _build_attribute(name, prop, ROOT_ID)
        if attr is not None:
            children.append(attr)
    root = root.model_copy(update={"children": children})

    log.info("Imported schema %s with %d attributes", metadata.schema_type, len(children) - 1)
    return ImportResult(metadata=metadata, attributes=[root])


def import_json_schema_file(schema_file: Path) -> ImportResult:
    """Load a JSON Schema file and import it."""
    if not schema_file.exists():
        raise SchemaImportError(f"Schema file not found: {schema_file}")
    try:
        with schema_file.open(encoding="utf-8") as f:
            schema_data = json.load(f)
    except json.JSONDecodeError as e:
        raise SchemaImportError(f"Invalid JSON in schema file: {e}")
    return import_json_schema(schema_data)


def resolve_data_type(schema_type: Any) -> DataType | None:
    """Narrow a JSON Schema ``type`` value to a supported data type.

    A type list resolves to its first member that is neither ``array`` nor
    ``null``. Returns None when the property must be dropped.
    """
    if isinstance(schema_type, list):
        schema_type = next((t for t in schema_type if t not in UNSUPPORTED_TYPES), None)
        if schema_type is None:
            return None
    elif schema_type is None:
        return DataType.STRING

    if schema_type in UNSUPPORTED_TYPES:
        return None
    try:
        return DataType(schema_type)
    except ValueError:
        log.warning("Unsupported JSON Schema type %r", schema_type)
        return None


def _extract_metadata(schema: dict[str, Any]) -> SchemaMetadata:
    return SchemaMetadata(
        title=_text(schema.get("title"), "Imported Schema"),
        schema_type=_text(schema.get("type"), "IMPORTED"),
        version=_text(schema.get("version"), "1.0"),
        description=_text(schema.get("description"), ""),
        credential_type=CredentialType.MERKLIZED,
    )


def _credential_subject(schema: dict[str, Any]) -> dict[str, Any]:
    properties = schema.get("properties")
    subject = properties.get("credentialSubject") if isinstance(properties, dict) else None
    if not isinstance(subject, dict):
        raise SchemaImportError("Schema must contain a credentialSubject property")
    return subject


def _build_attribute(name: str, prop: Any, parent_id: str) -> Attribute | None:
    if not isinstance(prop, dict):
        log.debug("Skipping non-object property %s", name)
        return None

    data_type = resolve_data_type(prop.get("type"))
    if data_type is None:
        log.debug("Dropping property %s with unsupported type %r", name, prop.get("type"))
        return None

    attribute_id = f"{parent_id}-{name}"
    children: list[Attribute] | None = None
    nested = prop.get("properties")
    if data_type == DataType.OBJECT and isinstance(nested, dict):
        children = []
        for child_name, child_prop in nested.items():
            child = _build_attribute(child_name, child_prop, attribute_id)
            if child is not None:
                children.append(child)

    return Attribute(
        id=attribute_id,
        name=name,
        title=_text(prop.get("title"), name),
        data_type=data_type,
        description=_text(prop.get("description"), ""),
        required=False,
        constraints=_extract_constraints(name, prop, data_type),
        children=children,
        parent_id=parent_id,
    )


def _extract_constraints(name: str, prop: dict[str, Any], data_type: DataType) -> AttributeConstraints | None:
    fields: dict[str, Any] = {}
    if data_type in NUMERIC_TYPES:
        for keyword, field in _NUMERIC_KEYWORDS:
            if prop.get(keyword) is not None:
                fields[field] = prop[keyword]
    if data_type == DataType.STRING:
        for keyword, field in _STRING_KEYWORDS:
            if prop.get(keyword) is not None:
                fields[field] = prop[keyword]

    if prop.get("format"):
        fields["format"] = prop["format"]
    for keyword in ("default", "const"):
        if _is_scalar(prop.get(keyword)):
            fields[keyword] = prop[keyword]
    for keyword in ("enum", "examples"):
        values = prop.get(keyword)
        if isinstance(values, list) and values and all(_is_scalar(v) for v in values):
            fields[keyword] = values
    if isinstance(prop.get("$comment"), str) and prop["$comment"]:
        fields["comment"] = prop["$comment"]

    if not fields:
        return None
    try:
        return AttributeConstraints.model_validate(fields)
    except ValidationError as e:
        raise SchemaImportError(f"Invalid constraints on property '{name}': {e}")


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value:
        return value
    return default
