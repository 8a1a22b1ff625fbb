"""Helpers over already-fetched schema and JSON-LD documents.

Extracts the JSON-LD context URL and the credential type name a query needs
from a schema catalog entry. Nothing here performs network access.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlparse

JSONLD_KEYWORDS = ("@protected", "@version", "@id", "@type", "id", "type")
GENERIC_TYPES = ("object", "array", "string", "number", "boolean", "null")

_IPFS_CID_V0 = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
_IPFS_CID_V1 = re.compile(r"^baf[a-z0-9]+$")


def extract_jsonld_context(document: dict[str, Any]) -> str | None:
    """Return the JSON-LD context URL referenced by a document.

    A string ``@context`` is returned as is; for a list, the first entry
    that is an http(s) URL.
    """
    context = document.get("@context")
    if isinstance(context, str):
        return context
    if isinstance(context, list):
        return next((c for c in context if isinstance(c, str) and c.startswith("http")), None)
    return None


def extract_schema_type(document: dict[str, Any]) -> str | None:
    """Find the credential type name in a JSON-LD context or schema.

    Looks for a non-keyword term in ``@context`` whose definition carries
    ``@context`` or ``@id``, then falls back to a non-generic ``type``.
    """
    context = document.get("@context")
    candidates = context if isinstance(context, list) else [context]
    for item in candidates:
        if isinstance(item, dict):
            term = _find_type_term(item)
            if term:
                return term

    schema_type = document.get("type")
    if isinstance(schema_type, str):
        return None if schema_type.lower() in GENERIC_TYPES else schema_type
    if isinstance(schema_type, list):
        return next(
            (
                t for t in schema_type
                if isinstance(t, str)
                and not t.startswith("@")
                and t != "VerifiableCredential"
                and t.lower() not in GENERIC_TYPES
            ),
            None,
        )
    return None


def is_valid_ipfs_url(url: str) -> bool:
    """Check whether a string is an IPFS gateway URL, ipfs:// URI or CID."""
    if "ipfs.io/ipfs/" in url or "ipfs://" in url:
        return True
    if _IPFS_CID_V0.match(url) or _IPFS_CID_V1.match(url):
        return True
    return url.startswith("https://") and "ipfs" in url


def is_valid_http_url(url: str) -> bool:
    """Check whether a string is an absolute http or https URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _find_type_term(context: dict[str, Any]) -> str | None:
    for key, value in context.items():
        if key in JSONLD_KEYWORDS or key.startswith("@"):
            continue
        if isinstance(value, dict) and ("@context" in value or "@id" in value):
            return key
    return None
