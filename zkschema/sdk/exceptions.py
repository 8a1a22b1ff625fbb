"""Errors raised by the schema generator, importer and tree operations.

Query compilation never raises for missing configuration; it returns None.
"""

from __future__ import annotations


class ZkSchemaError(ValueError):
    """Base class for structural errors in schema documents and trees."""


class SchemaGenerationError(ZkSchemaError):
    """Raised when an attribute tree cannot be turned into schema documents."""


class SchemaImportError(ZkSchemaError):
    """Raised when an external JSON Schema cannot be imported."""


class AttributeTreeError(ZkSchemaError):
    """Raised when a tree edit would break an attribute tree invariant."""
