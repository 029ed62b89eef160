import pytest

from scimgraph.data.constants import CORE_USER_SCHEMA, ENTERPRISE_USER_SCHEMA, AttributeType
from scimgraph.data.identifiers import AttrPath
from scimgraph.data.path import resolve_path
from scimgraph.error import InvalidPathError, UnknownAttributeError


@pytest.mark.parametrize(
    ("path", "expected_segments", "expected_type"),
    (
        ("userName", ("userName",), AttributeType.STRING),
        ("USERNAME", ("userName",), AttributeType.STRING),
        ("name.givenName", ("name", "givenName"), AttributeType.STRING),
        ("Name.GivenName", ("name", "givenName"), AttributeType.STRING),
        ("emails", ("emails",), AttributeType.COMPLEX),
        ("emails.primary", ("emails", "primary"), AttributeType.BOOLEAN),
        ("meta.lastModified", ("meta", "lastModified"), AttributeType.DATETIME),
        (f"{CORE_USER_SCHEMA}:userName", ("userName",), AttributeType.STRING),
        (f"{ENTERPRISE_USER_SCHEMA}:manager.value", ("manager", "value"), AttributeType.STRING),
        ("manager.$ref", ("manager", "$ref"), AttributeType.REFERENCE),
    ),
)
def test_attr_path_is_resolved(user_schema, path, expected_segments, expected_type):
    resolved = resolve_path(AttrPath.deserialize(path), user_schema)

    assert resolved.segments == expected_segments
    assert resolved.type is expected_type
    assert resolved.attr_path == AttrPath.deserialize(path)


def test_resolved_path_knows_schema_and_cardinality(user_schema):
    manager = resolve_path(AttrPath("manager", "value"), user_schema)
    emails = resolve_path(AttrPath("emails"), user_schema)

    assert manager.schema == ENTERPRISE_USER_SCHEMA
    assert not manager.multi_valued
    assert emails.schema == CORE_USER_SCHEMA
    assert emails.multi_valued


@pytest.mark.parametrize(
    ("path", "segment"),
    (
        ("unknownAttr", "unknownAttr"),
        ("name.unknown", "unknown"),
        ("emails.unknown", "unknown"),
        (f"{CORE_USER_SCHEMA}:employeeNumber", "employeeNumber"),
        ("urn:example:unknown:2.0:User:userName", "urn:example:unknown:2.0:User"),
    ),
)
def test_resolution_fails_if_unknown_attribute(user_schema, path, segment):
    with pytest.raises(UnknownAttributeError) as exc_info:
        resolve_path(AttrPath.deserialize(path), user_schema)

    assert exc_info.value.segment == segment
    assert exc_info.value.to_dict()["scimType"] == "invalidFilter"


@pytest.mark.parametrize("path", ("userName.value", "active.x", "name.givenName.x"))
def test_resolution_fails_if_sub_path_of_simple_attribute(user_schema, path):
    with pytest.raises(InvalidPathError, match="is not complex"):
        resolve_path(AttrPath.deserialize(path), user_schema)


def test_relative_path_is_resolved_against_parent(user_schema):
    parent = resolve_path(AttrPath("emails"), user_schema)

    resolved = resolve_path(AttrPath("VALUE"), user_schema, parent)

    assert resolved.attr_path == AttrPath("emails", "value")
    assert resolved.attrs[0] is parent.attr
    assert resolved.attr.name == "value"


def test_relative_path_resolution_fails_if_unknown_sub_attribute(user_schema):
    parent = resolve_path(AttrPath("emails"), user_schema)

    with pytest.raises(UnknownAttributeError, match="'emails.userName'"):
        resolve_path(AttrPath("userName"), user_schema, parent)


def test_relative_path_resolution_fails_if_schema_prefix(user_schema):
    parent = resolve_path(AttrPath("emails"), user_schema)

    with pytest.raises(InvalidPathError, match="schema URI prefix"):
        resolve_path(AttrPath("value", schema=CORE_USER_SCHEMA), user_schema, parent)


def test_nested_relative_paths_are_resolved(account_schema):
    devices = resolve_path(AttrPath("devices"), account_schema)
    ports = resolve_path(AttrPath("ports"), account_schema, devices)

    resolved = resolve_path(AttrPath("number"), account_schema, ports)

    assert resolved.attr_path == AttrPath("devices", "ports", "number")
    assert resolved.segments == ("devices", "ports", "number")
    assert resolved.type is AttributeType.INTEGER


def test_resolution_is_deterministic(user_schema):
    path = AttrPath.deserialize(f"{ENTERPRISE_USER_SCHEMA}:manager.displayName")

    assert resolve_path(path, user_schema) == resolve_path(path, user_schema)
