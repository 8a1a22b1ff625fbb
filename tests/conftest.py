"""Shared fixtures for schema and query tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from zkschema.sdk.models import (
    Attribute,
    AttributeConstraints,
    DataType,
    SchemaMetadata,
)
from zkschema.sdk.tree import default_credential_subject


@pytest.fixture
def metadata() -> SchemaMetadata:
    """Metadata of a merklized KYC schema."""
    return SchemaMetadata(
        title="KYC Age Credential",
        schema_type="KYCAgeCredential",
        version="1.0",
        description="Proof of age",
    )


@pytest.fixture
def attributes() -> list[Attribute]:
    """Tree with leaves of every type and two levels of nesting."""
    root = default_credential_subject()
    address_id = "credentialSubject-address"
    geo_id = f"{address_id}-geo"
    children = [
        *(root.children or []),
        Attribute(
            id="credentialSubject-birthday",
            name="birthday",
            title="Birthday",
            data_type=DataType.INTEGER,
            description="Birthday as YYYYMMDD",
            required=True,
            constraints=AttributeConstraints(minimum=19000101, maximum=21000101),
            parent_id="credentialSubject",
        ),
        Attribute(
            id="credentialSubject-fullName",
            name="fullName",
            title="Full name",
            data_type=DataType.STRING,
            description="Legal name",
            constraints=AttributeConstraints(min_length=1, max_length=64, pattern="^[A-Za-z ]+$"),
            parent_id="credentialSubject",
        ),
        Attribute(
            id="credentialSubject-isAdult",
            name="isAdult",
            title="Is adult",
            data_type=DataType.BOOLEAN,
            description="Older than 18",
            parent_id="credentialSubject",
        ),
        Attribute(
            id="credentialSubject-issuedAt",
            name="issuedAt",
            title="Issued at",
            data_type=DataType.DATE_TIME,
            description="Check time",
            parent_id="credentialSubject",
        ),
        Attribute(
            id=address_id,
            name="address",
            title="Address",
            data_type=DataType.OBJECT,
            description="Postal address",
            required=True,
            parent_id="credentialSubject",
            children=[
                Attribute(
                    id=f"{address_id}-city",
                    name="city",
                    title="City",
                    data_type=DataType.STRING,
                    description="City name",
                    required=True,
                    parent_id=address_id,
                ),
                Attribute(
                    id=geo_id,
                    name="geo",
                    title="Geo",
                    data_type=DataType.OBJECT,
                    description="Coordinates",
                    parent_id=address_id,
                    children=[
                        Attribute(
                            id=f"{geo_id}-lat",
                            name="lat",
                            title="Latitude",
                            data_type=DataType.NUMBER,
                            description="Latitude in degrees",
                            constraints=AttributeConstraints(minimum=-90, maximum=90),
                            parent_id=geo_id,
                        ),
                    ],
                ),
            ],
        ),
    ]
    return [root.model_copy(update={"children": children})]


@pytest.fixture
def write_json(tmp_path: Path):
    """Write a JSON document into the test directory and return its path."""
    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return path
    return _write
