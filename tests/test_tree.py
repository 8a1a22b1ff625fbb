"""Test attribute tree editing and lookups."""

from __future__ import annotations

import pytest

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
from zkschema.sdk.tree import (
    add_attribute,
    count_root_attributes,
    default_attributes,
    find_attribute,
    find_attribute_by_path,
    get_children,
    get_root,
    iter_attributes,
    remove_attribute,
    update_attribute,
    validate_attribute_tree,
    validate_schema_metadata,
)


@pytest.fixture
def non_merklized() -> SchemaMetadata:
    """Metadata of a non-merklized schema."""
    return SchemaMetadata(credential_type=CredentialType.NON_MERKLIZED)


def test_default_attributes() -> None:
    """Test a new session holds the root with the system id."""
    tree = default_attributes()

    assert len(tree) == 1
    root = tree[0]
    assert root.id == ROOT_ID
    assert root.is_root
    assert root.data_type == DataType.OBJECT
    assert root.required is True
    assert [child.id for child in root.children] == [SYSTEM_ID]
    assert root.children[0].is_system
    assert root.children[0].parent_id == ROOT_ID


def test_children_normalized() -> None:
    """Test object nodes always have a list and leaves never have one."""
    obj = Attribute(id="a", name="a", data_type=DataType.OBJECT)
    leaf = Attribute(id="b", name="b", children=[obj])

    assert obj.children == []
    assert leaf.children is None


def test_iter_and_find(attributes: list[Attribute]) -> None:
    """Test depth-first iteration and lookup by id."""
    ids = [attr.id for attr in iter_attributes(attributes)]

    assert ids[:3] == [ROOT_ID, SYSTEM_ID, "credentialSubject-birthday"]
    assert ids.index("credentialSubject-address-city") < ids.index("credentialSubject-address-geo-lat")
    assert find_attribute(attributes, "credentialSubject-address-geo-lat").name == "lat"
    assert find_attribute(attributes, "missing") is None
    assert get_root(attributes).id == ROOT_ID
    assert get_root([]) is None


def test_get_children(attributes: list[Attribute]) -> None:
    """Test child listing for root, nested and leaf nodes."""
    assert len(get_children(attributes)) == 6
    assert [c.name for c in get_children(attributes, "credentialSubject-address")] == ["city", "geo"]
    assert get_children(attributes, "credentialSubject-birthday") == []
    assert get_children(attributes, "missing") == []


def test_count_root_attributes(attributes: list[Attribute]) -> None:
    """Test the system id is not counted."""
    assert count_root_attributes(attributes) == 5
    assert count_root_attributes(default_attributes()) == 0
    assert count_root_attributes([]) == 0


@pytest.mark.parametrize("path, expected", [
    ("birthday", "credentialSubject-birthday"),
    ("credentialSubject.birthday", "credentialSubject-birthday"),
    ("address.geo.lat", "credentialSubject-address-geo-lat"),
    ("address.missing", None),
    ("birthday.year", None),
    ("", None),
])
def test_find_attribute_by_path(attributes: list[Attribute], path: str, expected: str | None) -> None:
    """Test dotted path resolution."""
    found = find_attribute_by_path(attributes, path)
    assert (found.id if found else None) == expected


def test_add_attribute_to_root() -> None:
    """Test adding under the root with an explicit id."""
    tree = default_attributes()
    new_tree = add_attribute(
        tree,
        {"name": "age", "title": "Age", "dataType": "integer"},
        attribute_id="credentialSubject-1",
    )

    added = find_attribute(new_tree, "credentialSubject-1")
    assert added.name == "age"
    assert added.data_type == DataType.INTEGER
    assert added.parent_id == ROOT_ID
    assert [c.id for c in get_children(new_tree)] == [SYSTEM_ID, "credentialSubject-1"]
    # input untouched
    assert count_root_attributes(tree) == 0


def test_add_attribute_generates_id(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test generated ids combine the parent id and a millisecond timestamp."""
    monkeypatch.setattr("zkschema.sdk.tree.time.time", lambda: 1700000000.5)
    tree = add_attribute(default_attributes(), Attribute(id="ignored", name="age", title="Age"))

    assert find_attribute(tree, "credentialSubject-1700000000500") is not None
    assert find_attribute(tree, "ignored") is None


def test_add_nested_attribute() -> None:
    """Test adding under a nested object."""
    tree = add_attribute(
        default_attributes(),
        {"name": "address", "title": "Address", "dataType": "object"},
        attribute_id="credentialSubject-address",
    )
    tree = add_attribute(
        tree,
        {"name": "city", "title": "City"},
        parent_id="credentialSubject-address",
        attribute_id="credentialSubject-address-city",
    )

    city = find_attribute_by_path(tree, "address.city")
    assert city.parent_id == "credentialSubject-address"


def test_add_attribute_errors(attributes: list[Attribute]) -> None:
    """Test invalid additions are rejected."""
    with pytest.raises(AttributeTreeError, match="not found"):
        add_attribute(attributes, {"name": "x", "title": "X"}, parent_id="missing")
    with pytest.raises(AttributeTreeError, match="not an object"):
        add_attribute(attributes, {"name": "x", "title": "X"}, parent_id="credentialSubject-birthday")
    with pytest.raises(AttributeTreeError, match="already exists"):
        add_attribute(attributes, {"name": "birthday", "title": "Again"})
    with pytest.raises(AttributeTreeError, match="only alphanumeric"):
        add_attribute(attributes, {"name": "bad name", "title": "Bad"})
    with pytest.raises(AttributeTreeError, match="Title is required"):
        add_attribute(attributes, {"name": "untitled", "title": ""})
    with pytest.raises(AttributeTreeError, match="256 characters"):
        add_attribute(attributes, {"name": "n" * 257, "title": "Long"})


def test_add_attribute_non_merklized_cap(non_merklized: SchemaMetadata) -> None:
    """Test the fifth root attribute is refused for non-merklized schemas."""
    tree = default_attributes()
    for index in range(4):
        tree = add_attribute(
            tree, {"name": f"a{index}", "title": f"A{index}"}, metadata=non_merklized, attribute_id=f"a{index}"
        )
    assert count_root_attributes(tree) == 4

    with pytest.raises(AttributeTreeError, match="maximum of 4 attributes"):
        add_attribute(tree, {"name": "a4", "title": "A4"}, metadata=non_merklized)

    merklized = add_attribute(tree, {"name": "a4", "title": "A4"}, metadata=SchemaMetadata(), attribute_id="a4")
    assert count_root_attributes(merklized) == 5


def test_non_merklized_cap_ignores_nested(non_merklized: SchemaMetadata) -> None:
    """Test nested attributes are not capped."""
    tree = default_attributes()
    tree = add_attribute(
        tree, {"name": "obj", "title": "Obj", "dataType": "object"}, metadata=non_merklized, attribute_id="obj"
    )
    for index in range(6):
        tree = add_attribute(
            tree, {"name": f"n{index}", "title": f"N{index}"},
            parent_id="obj", metadata=non_merklized, attribute_id=f"obj-{index}",
        )
    assert len(get_children(tree, "obj")) == 6


def test_update_attribute(attributes: list[Attribute]) -> None:
    """Test updating fields of a leaf."""
    tree = update_attribute(
        attributes,
        "credentialSubject-birthday",
        title="Date of birth",
        required=False,
        constraints=AttributeConstraints(minimum=0),
    )

    updated = find_attribute(tree, "credentialSubject-birthday")
    assert updated.title == "Date of birth"
    assert updated.required is False
    assert updated.constraints == AttributeConstraints(minimum=0)
    assert find_attribute(attributes, "credentialSubject-birthday").title == "Birthday"


def test_update_data_type_children(attributes: list[Attribute]) -> None:
    """Test type changes keep the children invariant."""
    tree = update_attribute(attributes, "credentialSubject-address", data_type=DataType.STRING)
    assert find_attribute(tree, "credentialSubject-address").children is None
    assert find_attribute(tree, "credentialSubject-address-city") is None

    tree = update_attribute(attributes, "credentialSubject-fullName", data_type="object")
    assert find_attribute(tree, "credentialSubject-fullName").children == []


def test_update_attribute_errors(attributes: list[Attribute]) -> None:
    """Test protected nodes and invalid updates are rejected."""
    with pytest.raises(AttributeTreeError, match="not found"):
        update_attribute(attributes, "missing", title="X")
    with pytest.raises(AttributeTreeError, match="cannot be edited"):
        update_attribute(attributes, SYSTEM_ID, title="X")
    with pytest.raises(AttributeTreeError, match="fixed"):
        update_attribute(attributes, ROOT_ID, name="subject")
    with pytest.raises(AttributeTreeError, match="ids cannot be changed"):
        update_attribute(attributes, "credentialSubject-birthday", id="other")
    with pytest.raises(AttributeTreeError, match="already exists"):
        update_attribute(attributes, "credentialSubject-birthday", name="fullName")


def test_update_root_description(attributes: list[Attribute]) -> None:
    """Test the root description stays editable."""
    tree = update_attribute(attributes, ROOT_ID, description="Subject data")
    assert get_root(tree).description == "Subject data"
    assert len(get_root(tree).children) == 6


def test_remove_attribute(attributes: list[Attribute]) -> None:
    """Test removal drops the whole subtree."""
    tree = remove_attribute(attributes, "credentialSubject-address")

    assert find_attribute(tree, "credentialSubject-address") is None
    assert find_attribute(tree, "credentialSubject-address-geo-lat") is None
    assert count_root_attributes(tree) == 4

    tree = remove_attribute(attributes, "credentialSubject-address-geo-lat")
    assert get_children(tree, "credentialSubject-address-geo") == []


@pytest.mark.parametrize("attribute_id", [ROOT_ID, SYSTEM_ID])
def test_remove_protected(attributes: list[Attribute], attribute_id: str) -> None:
    """Test the root and system id cannot be removed."""
    with pytest.raises(AttributeTreeError, match="cannot be removed"):
        remove_attribute(attributes, attribute_id)


def test_validate_attribute_tree(attributes: list[Attribute]) -> None:
    """Test tree validation reports problems."""
    assert validate_attribute_tree(attributes) == []
    assert validate_attribute_tree([]) == ["credentialSubject is required"]

    root = attributes[0]
    broken = [
        root.model_copy(update={"children": [
            *root.children[1:],
            Attribute(id="dup", name="birthday", title="Dup", parent_id=ROOT_ID),
            Attribute(id="bad", name="no spaces", title="", parent_id=ROOT_ID),
        ]})
    ]
    problems = validate_attribute_tree(broken)

    assert "credentialSubject is missing the system id attribute" in problems
    assert "Duplicate attribute name 'birthday' in credentialSubject" in problems
    assert any(problem.startswith("bad:") for problem in problems)


def test_validate_schema_metadata(metadata: SchemaMetadata) -> None:
    """Test schema metadata validation."""
    assert validate_schema_metadata(metadata) == []

    problems = validate_schema_metadata(
        SchemaMetadata(title="", schema_type="KYC-Age", version="", description="")
    )
    assert problems == [
        "Title is required",
        "Schema type: only alphanumeric characters allowed",
        "Version is required",
        "Description is required",
    ]
    assert validate_schema_metadata(SchemaMetadata(title="t" * 257)) == ["Title must be 256 characters or less"]
