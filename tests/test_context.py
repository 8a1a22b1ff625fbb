"""Test JSON-LD context and URL helpers."""

from __future__ import annotations

import pytest

from zkschema.sdk.context import (
    extract_jsonld_context,
    extract_schema_type,
    is_valid_http_url,
    is_valid_ipfs_url,
)
from zkschema.sdk.generator import generate_jsonld_context


def test_extract_jsonld_context() -> None:
    """Test the context URL is read from string and list forms."""
    assert extract_jsonld_context({"@context": "https://example.com/ctx.jsonld"}) == "https://example.com/ctx.jsonld"
    assert extract_jsonld_context({
        "@context": [{"@version": 1.1}, "ipfs://Qm", "https://example.com/ctx.jsonld"]
    }) == "https://example.com/ctx.jsonld"
    assert extract_jsonld_context({"@context": [{"@version": 1.1}]}) is None
    assert extract_jsonld_context({}) is None


def test_extract_schema_type_from_generated_context(metadata, attributes) -> None:  # type: ignore[no-untyped-def]
    """Test the type term of a generated context is found."""
    assert extract_schema_type(generate_jsonld_context(metadata, attributes)) == "KYCAgeCredential"


@pytest.mark.parametrize("document, expected", [
    ({"type": "KYCAgeCredential"}, "KYCAgeCredential"),
    ({"type": "object"}, None),
    ({"type": ["VerifiableCredential", "KYCAgeCredential"]}, "KYCAgeCredential"),
    ({"type": ["@type", "string"]}, None),
    ({"@context": {"@version": 1.1, "id": "@id", "Passport": {"@id": "urn:passport"}}}, "Passport"),
    ({"@context": {"@version": 1.1}, "type": "Fallback"}, "Fallback"),
    ({}, None),
])
def test_extract_schema_type(document: dict, expected: str | None) -> None:
    """Test type term and type fallback lookups."""
    assert extract_schema_type(document) == expected


@pytest.mark.parametrize("url, expected", [
    ("https://ipfs.io/ipfs/QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG", True),
    ("ipfs://QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG", True),
    ("QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG", True),
    ("bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi", True),
    ("https://gateway.pinata.cloud/ipfs/bafy", True),
    ("https://example.com/schema.json", False),
    ("not a url", False),
])
def test_is_valid_ipfs_url(url: str, expected: bool) -> None:
    """Test IPFS URL detection."""
    assert is_valid_ipfs_url(url) is expected


@pytest.mark.parametrize("url, expected", [
    ("https://example.com/schema.json", True),
    ("http://localhost:8080/ctx", True),
    ("ftp://example.com/file", False),
    ("https://", False),
    ("example.com", False),
])
def test_is_valid_http_url(url: str, expected: bool) -> None:
    """Test http URL detection."""
    assert is_valid_http_url(url) is expected
