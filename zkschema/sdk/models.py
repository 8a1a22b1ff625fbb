"""Pydantic models for credential schemas and zero-knowledge queries.

Provides type-safe definitions for the attribute tree, schema metadata,
query conditions and query builder session state.
Field aliases follow the camelCase keys used by the wizard's JSON files.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

ROOT_ID = "credentialSubject"
SYSTEM_ID = "credentialSubject-id"

Scalar = Union[bool, int, float, str]
ConditionValue = Union[Scalar, list[Scalar], None]


class CredentialType(str, Enum):
    """Credential encoding strategy."""
    MERKLIZED = "merklized"
    NON_MERKLIZED = "non-merklized"


class DataType(str, Enum):
    """Attribute data types supported by the schema builder."""
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    URI = "uri"
    DATE_TIME = "date-time"
    OBJECT = "object"


class ProofType(str, Enum):
    """Credential proof type."""
    SIG = "SIG"
    MTP = "MTP"


class CircuitId(str, Enum):
    """Circuit identifiers selectable in the query builder."""
    SIG_V2 = "credentialAtomicQuerySigV2"
    SIG_V2_ON_CHAIN = "credentialAtomicQuerySigV2OnChain"
    MTP_V2 = "credentialAtomicQueryMTPV2"
    MTP_V2_ON_CHAIN = "credentialAtomicQueryMTPV2OnChain"
    V3 = "credentialAtomicQueryV3"
    V3_ON_CHAIN = "credentialAtomicQueryV3OnChain"


class QueryType(str, Enum):
    """Kind of verification query."""
    CONDITION = "condition"
    SELECTIVE_DISCLOSURE = "selectiveDisclosure"
    CREDENTIAL_ISSUED = "credentialIssued"


class ConditionType(str, Enum):
    """Kind of a single condition item."""
    CONDITION = "condition"
    SELECTIVE_DISCLOSURE = "selectiveDisclosure"


class Operator(str, Enum):
    """Query operators."""
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    NIN = "nin"
    LT = "lt"
    GT = "gt"
    LTE = "lte"
    GTE = "gte"
    BETWEEN = "between"
    NONBETWEEN = "nonbetween"
    EXISTS = "exists"


class VerificationType(str, Enum):
    """Where the proof is verified."""
    OFF_CHAIN = "off-chain"
    ON_CHAIN = "on-chain"


class Network(str, Enum):
    """Networks available for on-chain verification."""
    POLYGON_MAINNET = "polygon-mainnet"
    POLYGON_AMOY = "polygon-amoy"


class WizardModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a camelCase JSON-compatible dict without unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AttributeConstraints(WizardModel):
    """Optional JSON Schema keywords attached to an attribute."""

    exclusive_minimum: float | int | None = None
    maximum: float | int | None = None
    minimum: float | int | None = None
    exclusive_maximum: float | int | None = None
    multiple_of: float | int | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None
    default: Scalar | None = None
    enum: list[Scalar] | None = None
    const: Scalar | None = None
    examples: list[Scalar] | None = None
    comment: str | None = None


class Attribute(WizardModel):
    """Node of a credential attribute tree."""

    id: str = Field(..., description="Stable node identifier")
    name: str = Field(..., description="Machine name, unique among siblings")
    title: str = Field(default="", description="Human readable label")
    data_type: DataType = Field(default=DataType.STRING, description="Attribute data type")
    description: str = Field(default="", description="Free text description")
    required: bool = Field(default=False, description="Listed in the parent's required array")
    constraints: AttributeConstraints | None = Field(default=None)
    children: list[Attribute] | None = Field(default=None, description="Only for object attributes")
    parent_id: str | None = Field(default=None, description="Lookup key of the owning node")

    @model_validator(mode="after")
    def _normalize_children(self) -> Attribute:
        if self.data_type == DataType.OBJECT:
            if self.children is None:
                self.children = []
        elif self.children is not None:
            self.children = None
        return self

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_ID

    @property
    def is_system(self) -> bool:
        return self.id == SYSTEM_ID


class SchemaMetadata(WizardModel):
    """Top-level schema metadata for one authoring session."""

    title: str = Field(default="First Schema")
    schema_type: str = Field(default="POH", description="Alphanumeric schema type")
    version: str = Field(default="1.0")
    description: str = Field(default="POH")
    credential_type: CredentialType = Field(default=CredentialType.MERKLIZED)


class ConditionItem(WizardModel):
    """Single user-authored constraint or disclosure request."""

    id: str
    type: ConditionType = ConditionType.CONDITION
    attribute_path: str = Field(..., description="Dot path below credentialSubject")
    operator: Operator = Operator.EQ
    value: ConditionValue = None


class QueryBuilderState(WizardModel):
    """Configuration of a query authoring session."""

    json_ld_context_url: str = ""
    schema_type: str = ""
    selected_attribute_path: str | None = None

    proof_type: ProofType | None = ProofType.SIG
    circuit_id: CircuitId | None = CircuitId.V3

    enable_proof_of_uniqueness: bool = False
    nullifier_session_id: str = ""

    query_type: QueryType = QueryType.CONDITION
    operator: Operator | None = None
    attribute_value: ConditionValue = None

    issuer_did: str = ""
    skip_revocation_check: bool = False

    verification_type: VerificationType = VerificationType.OFF_CHAIN
    network: Network | None = None
    request_id: str = ""
    contract_address: str = ""

    conditions: list[ConditionItem] = Field(default_factory=list)


class QueryObject(WizardModel):
    """One per-condition entry of the structured query output."""

    circuit_id: str
    id: int
    query: dict[str, Any]
    group_id: int | None = None


class SchemaDraft(WizardModel):
    """Schema metadata plus attribute tree, as stored in a tree file."""

    metadata: SchemaMetadata = Field(default_factory=SchemaMetadata)
    attributes: list[Attribute]
