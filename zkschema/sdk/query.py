"""Zero-knowledge query compilation.

Compiles query builder state and its conditions into iden3 ZK query
objects and iden3comm request envelopes. Missing configuration is not an
error: the builders return None (or an empty list) until the state is ready.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from zkschema.sdk.models import (
    Attribute,
    CircuitId,
    ConditionItem,
    ConditionType,
    ConditionValue,
    DataType,
    Operator,
    ProofType,
    QueryBuilderState,
    QueryObject,
    QueryType,
    VerificationType,
)
from zkschema.sdk.tree import find_attribute_by_path

log = logging.getLogger(__name__)

PLAIN_JSON_MEDIA_TYPE = "application/iden3comm-plain-json"
AUTHORIZATION_REQUEST_TYPE = "https://iden3-communication.io/authorization/1.0/request"
CONTRACT_REQUEST_TYPE = "https://iden3-communication.io/proofs/1.0/contract-based-request"
DEFAULT_REASON = "Query verification"

LINKED_QUERY_CIRCUIT = "linkedMultiQuery10-beta.1"
WILDCARD_ISSUER = "*"

_COMPARISON_OPERATORS = {
    Operator.NEQ: "$ne",
    Operator.LT: "$lt",
    Operator.GT: "$gt",
    Operator.LTE: "$lte",
    Operator.GTE: "$gte",
}
_SET_OPERATORS = {
    Operator.IN: "$in",
    Operator.NIN: "$nin",
}
_RANGE_OPERATORS = {
    Operator.BETWEEN: "$between",
    Operator.NONBETWEEN: "$nonbetween",
}

OPERATOR_LABELS = {
    Operator.EQ: "is equal to",
    Operator.NEQ: "is not equal to",
    Operator.IN: "matches one of the values",
    Operator.NIN: "matches none of the values",
    Operator.LT: "is less than",
    Operator.GT: "is greater than",
    Operator.LTE: "is less than or equal to",
    Operator.GTE: "is greater than or equal to",
    Operator.BETWEEN: "falls within the range",
    Operator.NONBETWEEN: "falls outside the range",
    Operator.EXISTS: "exists",
}

_BASE_OPERATORS = [Operator.EQ, Operator.NEQ, Operator.EXISTS]
_COMPARISON_AND_RANGE = [
    Operator.LT,
    Operator.GT,
    Operator.LTE,
    Operator.GTE,
    Operator.BETWEEN,
    Operator.NONBETWEEN,
]
OPERATORS_BY_DATA_TYPE = {
    DataType.STRING: [*_BASE_OPERATORS, Operator.IN, Operator.NIN],
    DataType.URI: [*_BASE_OPERATORS, Operator.IN, Operator.NIN],
    DataType.NUMBER: [*_BASE_OPERATORS, Operator.IN, Operator.NIN, *_COMPARISON_AND_RANGE],
    DataType.INTEGER: [*_BASE_OPERATORS, Operator.IN, Operator.NIN, *_COMPARISON_AND_RANGE],
    DataType.DATE_TIME: [*_BASE_OPERATORS, *_COMPARISON_AND_RANGE],
    DataType.BOOLEAN: list(_BASE_OPERATORS),
}

_INVALID = object()


def build_operator_value(operator: Operator | str, value: ConditionValue) -> Any:
    """Compile one operator and value to its wire form.

    Returns None when the value does not fit the operator, e.g. a range
    operator without exactly two bounds.
    """
    compiled = _compile_operator(Operator(operator), value)
    return None if compiled is _INVALID else compiled


def build_query(state: QueryBuilderState | dict[str, Any]) -> dict[str, Any] | None:
    """Build the combined ZK query for a query builder session.

    Args:
        state: Query builder state (model or camelCase dict)

    Returns:
        ZK query dict, or None until the context URL, schema type and at
        least one usable condition are set
    """
    state = _as_state(state)
    if not state.json_ld_context_url or not state.schema_type:
        return None

    query = _base_query(state)
    if state.query_type == QueryType.CREDENTIAL_ISSUED:
        query["credentialSubject"] = {}
        return query

    if not state.conditions:
        subject = _legacy_credential_subject(state)
    else:
        subject = _conditions_credential_subject(state.conditions)
    if not subject:
        return None

    query["credentialSubject"] = subject
    return query


def build_request(
    state: QueryBuilderState | dict[str, Any],
    verifier_did: str | None = None,
    reason: str = DEFAULT_REASON,
) -> dict[str, Any] | None:
    """Wrap the session's ZK query into an iden3comm request envelope."""
    state = _as_state(state)
    query = build_query(state)
    if query is None:
        return None

    on_chain = state.verification_type == VerificationType.ON_CHAIN
    request: dict[str, Any] = {
        "id": "1",
        "typ": PLAIN_JSON_MEDIA_TYPE,
        "type": CONTRACT_REQUEST_TYPE if on_chain else AUTHORIZATION_REQUEST_TYPE,
        "body": {
            "reason": reason,
            "query": query,
        },
    }
    if on_chain and verifier_did:
        request["body"]["verifier"] = verifier_did
    return request


def build_query_objects(
    state: QueryBuilderState | dict[str, Any],
    clock: Callable[[], int] | None = None,
) -> list[QueryObject]:
    """Build one query object per condition.

    With more than one condition the objects form a linked group: all use the
    linked multi-query circuit and every entry after the first carries the
    shared ``group_id``.

    Args:
        state: Query builder state
        clock: Millisecond time source; ids are ``clock() + index``

    Returns:
        Query objects, empty until the context URL and schema type are set
    """
    state = _as_state(state)
    if not state.json_ld_context_url or not state.schema_type:
        return []

    now = (clock or _now_ms)()
    if state.query_type == QueryType.CREDENTIAL_ISSUED:
        return [
            QueryObject(
                circuit_id=map_circuit_id(state.circuit_id, state.proof_type, False),
                id=now,
                query=_base_query(state),
            )
        ]

    conditions = state.conditions
    if not conditions:
        return []

    is_linked = len(conditions) > 1
    group_id = now if is_linked else None
    circuit_id = map_circuit_id(state.circuit_id, state.proof_type, is_linked)

    objects = []
    for index, condition in enumerate(conditions):
        query = _base_query(state)
        query["credentialSubject"] = _conditions_credential_subject([condition])
        objects.append(
            QueryObject(
                circuit_id=circuit_id,
                id=now + index,
                query=query,
                group_id=group_id if index > 0 else None,
            )
        )
    return objects


def map_circuit_id(
    circuit_id: CircuitId | str | None,
    proof_type: ProofType | str | None,
    is_linked: bool = False,
) -> str:
    """Map a selected circuit to the identifier used in query objects.

    Linked queries always use the linked multi-query circuit. The two V3
    selections (and no selection) map to their ``-beta.1`` names, picking the
    MTP variant for MTP proofs; any other id passes through unchanged.
    """
    if is_linked:
        return LINKED_QUERY_CIRCUIT

    is_mtp = _value(proof_type) == ProofType.MTP.value
    if circuit_id is None:
        return "credentialAtomicQueryMTPV3-beta.1" if is_mtp else "credentialAtomicQueryV3-beta.1"

    circuit = _value(circuit_id)
    if circuit in (CircuitId.V3.value, CircuitId.V3_ON_CHAIN.value):
        suffix = "OnChain" if circuit == CircuitId.V3_ON_CHAIN.value else ""
        prefix = "credentialAtomicQueryMTPV3" if is_mtp else "credentialAtomicQueryV3"
        return f"{prefix}{suffix}-beta.1"
    return circuit


def is_v3_circuit(circuit_id: CircuitId | str | None) -> bool:
    """Check for a V3 circuit by naming convention."""
    return bool(circuit_id) and "V3" in _value(circuit_id)


def is_on_chain_circuit(circuit_id: CircuitId | str | None) -> bool:
    """Check for an on-chain circuit by naming convention."""
    return bool(circuit_id) and "OnChain" in _value(circuit_id)


def get_available_circuits(proof_type: ProofType | str | None) -> list[CircuitId]:
    """List the circuits selectable for a proof type."""
    if not proof_type:
        return []
    if _value(proof_type) == ProofType.SIG.value:
        return [CircuitId.SIG_V2, CircuitId.SIG_V2_ON_CHAIN, CircuitId.V3, CircuitId.V3_ON_CHAIN]
    return [CircuitId.MTP_V2, CircuitId.MTP_V2_ON_CHAIN, CircuitId.V3, CircuitId.V3_ON_CHAIN]


def get_available_operators(data_type: DataType | str | None) -> list[Operator]:
    """List the operators a condition may use on an attribute of ``data_type``.

    Without a data type every operator is offered; object attributes and
    unknown types get the base ``eq``/``neq``/``exists`` set.
    """
    if data_type is None:
        return list(Operator)
    try:
        data_type = DataType(data_type)
    except ValueError:
        return list(_BASE_OPERATORS)
    return list(OPERATORS_BY_DATA_TYPE.get(data_type, _BASE_OPERATORS))


def check_condition_operators(conditions: list[ConditionItem], attributes: list[Attribute]) -> list[str]:
    """Flag conditions whose operator does not fit the attribute's data type.

    Selective disclosure entries and paths missing from the tree are not checked.
    """
    problems = []
    for condition in conditions:
        if condition.type == ConditionType.SELECTIVE_DISCLOSURE:
            continue
        attribute = find_attribute_by_path(attributes, condition.attribute_path)
        if attribute is None:
            continue
        if condition.operator not in get_available_operators(attribute.data_type):
            problems.append(
                f"Operator '{condition.operator.value}' is not available for "
                f"{attribute.data_type.value} attribute {condition.attribute_path}"
            )
    return problems


def validate_query_state(
    state: QueryBuilderState | dict[str, Any],
    attributes: list[Attribute] | None = None,
) -> list[str]:
    """List the query builder problems that keep a state from compiling.

    With ``attributes`` the condition operators are also checked against the
    attribute data types.
    """
    state = _as_state(state)
    problems = []
    if not state.json_ld_context_url:
        problems.append("URL to JSON-LD Context is required")
    if not state.schema_type:
        problems.append("Schema type is required")
    if state.enable_proof_of_uniqueness and not state.nullifier_session_id:
        problems.append("Nullifier Session ID is required for proof of uniqueness")
    if state.verification_type == VerificationType.ON_CHAIN:
        if state.network is None:
            problems.append("Network is required for on-chain verification")
        if not state.request_id:
            problems.append("Request ID is required for on-chain verification")
        if not state.contract_address:
            problems.append("Smart Contract Address is required for on-chain verification")
    if attributes:
        problems.extend(check_condition_operators(state.conditions, attributes))
    return problems


def describe_condition(condition: ConditionItem, attributes: list[Attribute] | None = None) -> str:
    """Render a condition as the sentence shown in the condition list."""
    attribute = find_attribute_by_path(attributes, condition.attribute_path) if attributes else None
    name = (attribute.title or attribute.name) if attribute else condition.attribute_path

    if condition.type == ConditionType.SELECTIVE_DISCLOSURE:
        return f"{name} value will be revealed"

    operator = condition.operator
    value = condition.value
    if operator == Operator.EXISTS:
        if _is_false(value):
            return f"{name} does not exist in the credential"
        return f"{name} exists in the credential"

    if operator in _SET_OPERATORS:
        values = value if isinstance(value, list) else []
        value_text = ", ".join(_display(v) for v in values)
    elif operator in _RANGE_OPERATORS:
        bounds = value if isinstance(value, list) and len(value) == 2 else [0, 0]
        value_text = f"{_display(bounds[0])}, {_display(bounds[1])}"
    else:
        value_text = _display(value) if value is not None else ""
    return f"{name} {OPERATOR_LABELS[operator]} {value_text}"


def _compile_operator(operator: Operator, value: ConditionValue) -> Any:
    if operator == Operator.EQ:
        return _INVALID if value is None else value
    if operator in _COMPARISON_OPERATORS:
        return {_COMPARISON_OPERATORS[operator]: value}
    if operator in _SET_OPERATORS:
        return {_SET_OPERATORS[operator]: value if isinstance(value, list) else [value]}
    if operator in _RANGE_OPERATORS:
        if isinstance(value, list) and len(value) == 2:
            return {_RANGE_OPERATORS[operator]: [value[0], value[1]]}
        return _INVALID
    if operator == Operator.EXISTS:
        return {"$exists": not _is_false(value)}
    return _INVALID


def _conditions_credential_subject(conditions: list[ConditionItem]) -> dict[str, Any]:
    subject: dict[str, Any] = {}
    for condition in conditions:
        path = condition.attribute_path
        if condition.type == ConditionType.SELECTIVE_DISCLOSURE:
            compiled: Any = {}
        else:
            compiled = _compile_operator(condition.operator, condition.value)
            if compiled is _INVALID:
                log.debug("Skipping condition %s: value does not fit %s", condition.id, condition.operator.value)
                continue
        if path in subject:
            log.debug("Condition %s overwrites earlier condition on %s", condition.id, path)
        subject[path] = compiled
    return subject


def _legacy_credential_subject(state: QueryBuilderState) -> dict[str, Any]:
    if state.operator is None or state.attribute_value is None:
        return {}
    if not state.selected_attribute_path:
        return {}
    compiled = _compile_operator(state.operator, state.attribute_value)
    if compiled is _INVALID:
        return {}
    return {state.selected_attribute_path: compiled}


def _base_query(state: QueryBuilderState) -> dict[str, Any]:
    query: dict[str, Any] = {
        "context": state.json_ld_context_url,
        "type": state.schema_type,
        "allowedIssuers": _allowed_issuers(state.issuer_did),
    }
    if state.skip_revocation_check:
        query["skipClaimRevocationCheck"] = True
    return query


def _allowed_issuers(issuer_did: str) -> list[str]:
    if issuer_did and issuer_did != WILDCARD_ISSUER:
        return [issuer_did]
    return [WILDCARD_ISSUER]


def _as_state(state: QueryBuilderState | dict[str, Any]) -> QueryBuilderState:
    if isinstance(state, QueryBuilderState):
        return state
    return QueryBuilderState.model_validate(state)


def _is_false(value: Any) -> bool:
    return value is False or value == "false"


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _value(item: Any) -> str:
    return item.value if hasattr(item, "value") else str(item)


def _now_ms() -> int:
    return int(time.time() * 1000)
