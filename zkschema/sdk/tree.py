"""Attribute tree operations.

The tree is a list of root attributes owning their subtrees through
``children``. Every edit returns a new list; inputs are never mutated.
``parent_id`` is only a lookup key and is never followed for traversal.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterator
from typing import Any

from zkschema.sdk.exceptions import AttributeTreeError
from zkschema.sdk.models import (
    ROOT_ID,
    SYSTEM_ID,
    Attribute,
    AttributeConstraints,
    CredentialType,
    DataType,
    SchemaMetadata,
)

log = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
SCHEMA_TYPE_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
MAX_LABEL_LENGTH = 256
NON_MERKLIZED_MAX_ATTRIBUTES = 4


def system_id_attribute() -> Attribute:
    """Build the immutable credential subject ``id`` attribute."""
    return Attribute(
        id=SYSTEM_ID,
        name="id",
        title="Credential subject ID",
        data_type=DataType.URI,
        description="Stores the DID of the subject that owns the credential",
        required=False,
        constraints=AttributeConstraints(format="uri"),
        parent_id=ROOT_ID,
    )


def default_credential_subject(
    title: str = "Credential subject",
    description: str = "Stores the data of the credential",
) -> Attribute:
    """Build a fresh root holding only the system ``id`` child."""
    return Attribute(
        id=ROOT_ID,
        name=ROOT_ID,
        title=title,
        data_type=DataType.OBJECT,
        description=description,
        required=True,
        children=[system_id_attribute()],
    )


def default_attributes() -> list[Attribute]:
    """Return the attribute list of a new authoring session."""
    return [default_credential_subject()]


def iter_attributes(attributes: list[Attribute]) -> Iterator[Attribute]:
    """Yield every node depth-first in document order."""
    for attr in attributes:
        yield attr
        if attr.children:
            yield from iter_attributes(attr.children)


def find_attribute(attributes: list[Attribute], attribute_id: str) -> Attribute | None:
    """Find a node by id anywhere in the tree."""
    for attr in iter_attributes(attributes):
        if attr.id == attribute_id:
            return attr
    return None


def get_root(attributes: list[Attribute]) -> Attribute | None:
    """Return the ``credentialSubject`` node if present."""
    for attr in attributes:
        if attr.id == ROOT_ID:
            return attr
    return None


def get_children(attributes: list[Attribute], parent_id: str | None = None) -> list[Attribute]:
    """Return the children of ``parent_id`` (root by default), or an empty list."""
    parent = find_attribute(attributes, parent_id or ROOT_ID)
    if parent is None or parent.children is None:
        return []
    return list(parent.children)


def count_root_attributes(attributes: list[Attribute]) -> int:
    """Count direct user attributes of the root, excluding the system ``id``."""
    root = get_root(attributes)
    if root is None or not root.children:
        return 0
    return sum(1 for child in root.children if child.id != SYSTEM_ID)


def find_attribute_by_path(attributes: list[Attribute], path: str) -> Attribute | None:
    """Resolve a dotted query path such as ``address.city``.

    A leading ``credentialSubject`` segment is ignored, so both
    ``credentialSubject.age`` and ``age`` resolve to the same node.
    """
    parts = [part for part in path.split(".") if part and part != ROOT_ID]
    if not parts:
        return None

    root = get_root(attributes)
    current = root.children if root is not None else attributes
    node: Attribute | None = None
    for part in parts:
        node = next((child for child in current or [] if child.name == part), None)
        if node is None:
            return None
        current = node.children
    return node


def add_attribute(
    attributes: list[Attribute],
    attribute: Attribute | dict[str, Any],
    parent_id: str | None = None,
    metadata: SchemaMetadata | None = None,
    attribute_id: str | None = None,
) -> list[Attribute]:
    """Append an attribute to ``parent_id`` (root by default) and return the new tree.

    Args:
        attributes: Current tree
        attribute: Attribute or attribute fields; any ``id`` in it is replaced
        parent_id: Owning object node
        metadata: When non-merklized, the root is capped at four attributes
        attribute_id: Explicit id; generated from the parent id and clock otherwise

    Raises:
        AttributeTreeError: If the parent is missing or not an object, the name
            or title is invalid, the name is taken, or the cap is reached.
    """
    parent_id = parent_id or ROOT_ID
    parent = find_attribute(attributes, parent_id)
    if parent is None:
        raise AttributeTreeError(f"Parent attribute not found: {parent_id}")
    if parent.data_type != DataType.OBJECT:
        raise AttributeTreeError(f"Parent attribute {parent_id} is not an object")

    fields = _attribute_fields(attribute)
    fields["id"] = attribute_id or f"{parent_id}-{int(time.time() * 1000)}"
    fields["parent_id"] = parent_id
    new_attr = Attribute.model_validate(fields)

    _check_label(new_attr.name, new_attr.title)
    _check_unique_name(parent, new_attr.name)
    if parent_id == ROOT_ID and _is_non_merklized(metadata):
        if count_root_attributes(attributes) >= NON_MERKLIZED_MAX_ATTRIBUTES:
            raise AttributeTreeError(
                "Non-merklized credentials support a maximum of 4 attributes"
            )

    log.debug("Adding attribute %s under %s", new_attr.id, parent_id)
    return _map_tree(
        attributes,
        parent_id,
        lambda node: node.model_copy(update={"children": [*(node.children or []), new_attr]}),
    )


def update_attribute(attributes: list[Attribute], attribute_id: str, **updates: Any) -> list[Attribute]:
    """Apply field updates to one node and return the new tree.

    Changing ``data_type`` away from ``object`` drops the children; changing
    it to ``object`` starts with no children.

    Raises:
        AttributeTreeError: If the node is missing, is the system ``id``, the
            update renames the root, or the new name/title is invalid.
    """
    target = find_attribute(attributes, attribute_id)
    if target is None:
        raise AttributeTreeError(f"Attribute not found: {attribute_id}")
    if target.is_system:
        raise AttributeTreeError("The credential subject id attribute cannot be edited")
    if target.is_root and ({"name", "title", "data_type", "id"} & updates.keys()):
        raise AttributeTreeError("The credentialSubject name, title and type are fixed")
    if "id" in updates or "parent_id" in updates:
        raise AttributeTreeError("Attribute ids cannot be changed")

    fields = target.model_dump()
    fields.update(updates)
    data_type = DataType(fields["data_type"])
    if "data_type" in updates:
        if data_type != DataType.OBJECT:
            fields["children"] = None
        elif target.data_type != DataType.OBJECT:
            fields["children"] = []
    updated = Attribute.model_validate(fields)

    _check_label(updated.name, updated.title)
    if updated.name != target.name and target.parent_id:
        parent = find_attribute(attributes, target.parent_id)
        if parent is not None:
            _check_unique_name(parent, updated.name, exclude_id=attribute_id)

    return _map_tree(attributes, attribute_id, lambda node: updated)


def remove_attribute(attributes: list[Attribute], attribute_id: str) -> list[Attribute]:
    """Remove a node and its subtree, returning the new tree.

    Raises:
        AttributeTreeError: For the root or the system ``id`` attribute.
    """
    if attribute_id in (ROOT_ID, SYSTEM_ID):
        raise AttributeTreeError(f"Attribute {attribute_id} cannot be removed")
    return _remove(attributes, attribute_id)


def validate_attribute_tree(attributes: list[Attribute]) -> list[str]:
    """Check names, titles and sibling uniqueness; return a list of problems."""
    problems: list[str] = []
    root = get_root(attributes)
    if root is None:
        return ["credentialSubject is required"]
    if not any(child.id == SYSTEM_ID for child in root.children or []):
        problems.append("credentialSubject is missing the system id attribute")

    for attr in iter_attributes(root.children or []):
        if attr.is_system:
            continue
        try:
            _check_label(attr.name, attr.title)
        except AttributeTreeError as e:
            problems.append(f"{attr.id}: {e}")

    for node in iter_attributes([root]):
        seen: set[str] = set()
        for child in node.children or []:
            if child.name in seen:
                problems.append(f"Duplicate attribute name '{child.name}' in {node.id}")
            seen.add(child.name)
    return problems


def validate_schema_metadata(metadata: SchemaMetadata) -> list[str]:
    """Check schema metadata the way the schema form does."""
    problems: list[str] = []
    if not metadata.title:
        problems.append("Title is required")
    elif len(metadata.title) > MAX_LABEL_LENGTH:
        problems.append("Title must be 256 characters or less")
    if not metadata.schema_type:
        problems.append("Schema type is required")
    elif len(metadata.schema_type) > MAX_LABEL_LENGTH:
        problems.append("Schema type must be 256 characters or less")
    elif not SCHEMA_TYPE_PATTERN.match(metadata.schema_type):
        problems.append("Schema type: only alphanumeric characters allowed")
    if not metadata.version:
        problems.append("Version is required")
    if not metadata.description:
        problems.append("Description is required")
    return problems


def _attribute_fields(attribute: Attribute | dict[str, Any]) -> dict[str, Any]:
    if isinstance(attribute, Attribute):
        return attribute.model_dump()
    return Attribute.model_validate({"id": "", **attribute}).model_dump()


def _check_label(name: str, title: str) -> None:
    if not name:
        raise AttributeTreeError("Name is required")
    if len(name) > MAX_LABEL_LENGTH:
        raise AttributeTreeError("Name must be 256 characters or less")
    if not NAME_PATTERN.match(name):
        raise AttributeTreeError(
            "Name: only alphanumeric characters, dash (-) and underscore (_)"
        )
    if not title:
        raise AttributeTreeError("Title is required")
    if len(title) > MAX_LABEL_LENGTH:
        raise AttributeTreeError("Title must be 256 characters or less")


def _check_unique_name(parent: Attribute, name: str, exclude_id: str | None = None) -> None:
    for sibling in parent.children or []:
        if sibling.name == name and sibling.id != exclude_id:
            raise AttributeTreeError(f"Attribute name '{name}' already exists in {parent.id}")


def _is_non_merklized(metadata: SchemaMetadata | None) -> bool:
    return metadata is not None and metadata.credential_type == CredentialType.NON_MERKLIZED


def _map_tree(
    attributes: list[Attribute],
    attribute_id: str,
    replace: Callable[[Attribute], Attribute],
) -> list[Attribute]:
    result = []
    for attr in attributes:
        if attr.id == attribute_id:
            result.append(replace(attr))
        elif attr.children:
            result.append(attr.model_copy(update={"children": _map_tree(attr.children, attribute_id, replace)}))
        else:
            result.append(attr)
    return result


def _remove(attributes: list[Attribute], attribute_id: str) -> list[Attribute]:
    result = []
    for attr in attributes:
        if attr.id == attribute_id:
            continue
        if attr.children:
            attr = attr.model_copy(update={"children": _remove(attr.children, attribute_id)})
        result.append(attr)
    return result
