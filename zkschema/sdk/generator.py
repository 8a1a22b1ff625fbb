"""JSON Schema and JSON-LD Context generation.

Turns an attribute tree plus schema metadata into the two documents a
credential schema is published as. Both walk the tree depth-first from
``credentialSubject`` and skip the system ``id`` attribute.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from zkschema.sdk.exceptions import SchemaGenerationError
from zkschema.sdk.models import (
    ROOT_ID,
    SYSTEM_ID,
    Attribute,
    AttributeConstraints,
    DataType,
    SchemaMetadata,
)
from zkschema.sdk.tree import NON_MERKLIZED_MAX_ATTRIBUTES, count_root_attributes, get_root

log = logging.getLogger(__name__)

JSON_SCHEMA_DRAFT = "https://json-schema.org/draft/2020-12/schema"
DEFAULT_JSONLD_CONTEXT_URL = "https://example.com/path/to/file/context.jsonld"
XSD_NAMESPACE = "http://www.w3.org/2001/XMLSchema#"
VOCAB_PREFIX = "iden3-vocab"

XSD_TYPES = {
    DataType.NUMBER: "xsd:double",
    DataType.BOOLEAN: "xsd:boolean",
    DataType.DATE_TIME: "xsd:dateTime",
    DataType.URI: "xsd:anyURI",
    DataType.OBJECT: "xsd:object",
}

# Constraint field -> JSON Schema keyword, in emission order
_BOUND_KEYWORDS = (
    ("exclusive_minimum", "exclusiveMinimum"),
    ("maximum", "maximum"),
    ("minimum", "minimum"),
    ("exclusive_maximum", "exclusiveMaximum"),
    ("min_length", "minLength"),
    ("max_length", "maxLength"),
)


@dataclass
class ValidationResult:
    """Outcome of a guard check."""
    valid: bool
    error: str | None = None


@dataclass
class SchemaDocuments:
    """Documents generated for one schema."""
    json_schema: dict[str, Any]
    jsonld_context: dict[str, Any]


def generate(metadata: SchemaMetadata, attributes: list[Attribute]) -> SchemaDocuments:
    """Generate both the JSON Schema and the JSON-LD Context."""
    return SchemaDocuments(
        json_schema=generate_json_schema(metadata, attributes),
        jsonld_context=generate_jsonld_context(metadata, attributes),
    )


def generate_json_schema(
    metadata: SchemaMetadata,
    attributes: list[Attribute],
    jsonld_context_url: str = DEFAULT_JSONLD_CONTEXT_URL,
) -> dict[str, Any]:
    """Build the JSON Schema document for a credential.

    Args:
        metadata: Schema metadata
        attributes: Attribute tree containing ``credentialSubject``
        jsonld_context_url: Value for ``$metadata.jsonLdContext``

    Returns:
        JSON Schema (draft 2020-12) as a dict

    Raises:
        SchemaGenerationError: If the tree has no ``credentialSubject``
    """
    root = _require_root(attributes)
    properties, required = _build_properties(root.children or [])
    log.debug("Generated %d credentialSubject properties for %s", len(properties), metadata.schema_type)

    return {
        "$metadata": {
            "uris": [],
            "jsonLdContext": jsonld_context_url,
        },
        "$schema": JSON_SCHEMA_DRAFT,
        "version": metadata.version,
        "type": metadata.schema_type,
        "title": metadata.title,
        "description": metadata.description,
        "properties": {
            "credentialSubject": {
                "description": root.description,
                "title": root.title,
                "type": "object",
                "properties": {"id": _system_id_property(), **properties},
                "required": required,
            },
            "id": {"type": "string"},
            "issuer": {"type": ["string", "object"], "format": "uri"},
            "issuanceDate": {"type": "string", "format": "date-time"},
            "expirationDate": {"type": "string", "format": "date-time"},
            "@context": {"type": ["string", "array"]},
        },
        "required": [],
    }


def generate_jsonld_context(metadata: SchemaMetadata, attributes: list[Attribute]) -> dict[str, Any]:
    """Build the JSON-LD Context document for a credential.

    The schema ``@id`` and the vocabulary IRI are fresh random UUID URNs on
    every call, so two contexts for the same tree differ in those two values.

    Raises:
        SchemaGenerationError: If the tree has no ``credentialSubject``
    """
    root = _require_root(attributes)
    schema_id = f"urn:uuid:{uuid.uuid4()}"
    vocab_id = f"urn:uuid:{uuid.uuid4()}"

    return {
        "@context": [
            {
                "@protected": True,
                "@version": 1.1,
                "id": "@id",
                "type": "@type",
                metadata.schema_type: {
                    "@context": {
                        "@propagate": True,
                        "@protected": True,
                        VOCAB_PREFIX: f"{vocab_id}#",
                        "xsd": XSD_NAMESPACE,
                        **_build_context_terms(root.children or [], ""),
                    },
                    "@id": schema_id,
                },
            }
        ]
    }


def validate_non_merklized_attributes(attributes: list[Attribute]) -> ValidationResult:
    """Check the non-merklized cap on direct credentialSubject attributes."""
    if get_root(attributes) is None:
        return ValidationResult(valid=False, error="credentialSubject is required")
    if count_root_attributes(attributes) > NON_MERKLIZED_MAX_ATTRIBUTES:
        return ValidationResult(
            valid=False,
            error="Non-merklized credentials support a maximum of 4 attributes",
        )
    return ValidationResult(valid=True)


def xsd_type(data_type: DataType) -> str:
    """Map an attribute data type to its XSD type."""
    return XSD_TYPES.get(data_type, "xsd:string")


def _require_root(attributes: list[Attribute]) -> Attribute:
    root = get_root(attributes)
    if root is None:
        raise SchemaGenerationError("credentialSubject attribute is required")
    return root


def _system_id_property() -> dict[str, Any]:
    return {
        "type": "string",
        "title": "Credential subject ID",
        "description": "Stores the DID of the subject that owns the credential",
        "format": "uri",
    }


def _build_properties(children: list[Attribute]) -> tuple[dict[str, Any], list[str]]:
    properties: dict[str, Any] = {}
    required: list[str] = []
    for child in children:
        if child.id in (ROOT_ID, SYSTEM_ID):
            continue
        properties[child.name] = _build_property(child)
        if child.required:
            required.append(child.name)
    return properties, required


def _build_property(attr: Attribute) -> dict[str, Any]:
    prop: dict[str, Any] = {
        "type": attr.data_type.value,
        "title": attr.title,
        "description": attr.description,
    }
    constraints = attr.constraints
    has_format = bool(constraints and constraints.format)

    if attr.data_type == DataType.URI and not has_format:
        prop["format"] = "uri"
    if attr.data_type == DataType.DATE_TIME and not has_format:
        prop["format"] = "date-time"

    if attr.data_type == DataType.OBJECT and attr.children:
        nested_properties, nested_required = _build_properties(attr.children)
        prop["properties"] = nested_properties
        prop["required"] = nested_required
        prop["type"] = "object"

    if constraints:
        prop.update(_constraint_keywords(constraints))
    return prop


def _constraint_keywords(constraints: AttributeConstraints) -> dict[str, Any]:
    keywords: dict[str, Any] = {}
    for field, keyword in _BOUND_KEYWORDS:
        value = getattr(constraints, field)
        if value is not None:
            keywords[keyword] = value
    if constraints.pattern:
        keywords["pattern"] = constraints.pattern
    if constraints.format:
        keywords["format"] = constraints.format
    if constraints.multiple_of is not None:
        keywords["multipleOf"] = constraints.multiple_of
    if constraints.default is not None:
        keywords["default"] = constraints.default
    if constraints.enum:
        keywords["enum"] = list(constraints.enum)
    if constraints.const is not None:
        keywords["const"] = constraints.const
    if constraints.examples:
        keywords["examples"] = list(constraints.examples)
    if constraints.comment:
        keywords["$comment"] = constraints.comment
    return keywords


def _build_context_terms(children: list[Attribute], parent_path: str) -> dict[str, Any]:
    terms: dict[str, Any] = {}
    for child in children:
        if child.id in (ROOT_ID, SYSTEM_ID):
            continue
        path = f"{parent_path}.{child.name}" if parent_path else child.name
        term_id = f"{VOCAB_PREFIX}:{path}"
        if child.data_type == DataType.OBJECT and child.children:
            terms[child.name] = {
                "@context": _build_context_terms(child.children, path),
                "@id": term_id,
            }
        else:
            terms[child.name] = {"@id": term_id, "@type": xsd_type(child.data_type)}
    return terms
