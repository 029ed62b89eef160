import copy

import pytest

from scimgraph.data.attrs import AttributeDefinition, AttributeMutability, AttributeReturn
from scimgraph.data.constants import CORE_USER_SCHEMA, AttributeType
from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.error import SchemaLoadError
from scimgraph.schemas import (
    ENTERPRISE_USER,
    GROUP,
    GROUP_RESOURCE_TYPE,
    USER,
    USER_RESOURCE_TYPE,
    AttributeDocument,
    SchemaDocument,
    build_resource_types,
)


def _schema_docs():
    return [USER.to_dict(), ENTERPRISE_USER.to_dict(), GROUP.to_dict()]


def test_built_in_documents_load_to_same_resource_types():
    expected = [
        ResourceTypeSchema.build(
            name="User",
            endpoint="/Users",
            schema=USER,
            extensions=[(ENTERPRISE_USER, False)],
            description="User Account",
        ),
        ResourceTypeSchema.build(name="Group", endpoint="/Groups", schema=GROUP),
    ]

    output = build_resource_types(_schema_docs(), [USER_RESOURCE_TYPE, GROUP_RESOURCE_TYPE])

    assert output == expected
    assert output[0].description == "User Account"


@pytest.mark.parametrize("attr", USER.attributes, ids=lambda attr: str(attr.name))
def test_attribute_document_round_trip(attr):
    assert AttributeDocument().load(attr.to_dict()) == attr


def test_schema_document_is_loaded():
    schema = SchemaDocument().load(ENTERPRISE_USER.to_dict())

    assert schema == ENTERPRISE_USER


def test_attribute_defaults_are_applied():
    attr = AttributeDocument().load({"name": "nickName", "type": "string"})

    assert attr == AttributeDefinition(name="nickName", type=AttributeType.STRING)
    assert attr.mutability is AttributeMutability.READ_WRITE
    assert attr.returned is AttributeReturn.DEFAULT
    assert not attr.multi_valued


def test_unknown_attribute_document_keys_are_ignored():
    attr = AttributeDocument().load(
        {"name": "nickName", "type": "string", "x-vendor": {"indexed": True}}
    )

    assert attr.name == "nickName"


@pytest.mark.parametrize(
    ("attr_doc", "field"),
    (
        ({"type": "string"}, "name"),
        ({"name": "bad^name", "type": "string"}, "name"),
        ({"name": "nickName", "type": "text"}, "type"),
        ({"name": "nickName", "type": "string", "mutability": "sometimes"}, "mutability"),
        ({"name": "nickName", "type": "string", "returned": "maybe"}, "returned"),
        ({"name": "nickName", "type": "string", "uniqueness": "local"}, "uniqueness"),
        ({"name": "nickName", "type": "string", "multiValued": "often"}, "multiValued"),
        (
            {
                "name": "nickName",
                "type": "string",
                "subAttributes": [{"name": "value", "type": "string"}],
            },
            "subAttributes",
        ),
    ),
)
def test_bad_attribute_document_is_rejected(attr_doc, field):
    schema_doc = {"id": "urn:example:schemas:2.0:Thing", "attributes": [attr_doc]}

    with pytest.raises(SchemaLoadError, match="malformed schema definitions") as exc_info:
        build_resource_types(
            [schema_doc],
            [{"name": "Thing", "endpoint": "/Things", "schema": "urn:example:schemas:2.0:Thing"}],
        )

    assert field in exc_info.value.detail
    assert exc_info.value.status == 500


def test_duplicated_sub_attributes_are_rejected():
    schema_doc = {
        "id": "urn:example:schemas:2.0:Thing",
        "attributes": [
            {
                "name": "owner",
                "type": "complex",
                "subAttributes": [
                    {"name": "value", "type": "string"},
                    {"name": "VALUE", "type": "string"},
                ],
            }
        ],
    }

    with pytest.raises(SchemaLoadError, match="defined more than once"):
        build_resource_types(
            [schema_doc],
            [{"name": "Thing", "endpoint": "/Things", "schema": "urn:example:schemas:2.0:Thing"}],
        )


@pytest.mark.parametrize(
    "resource_type_doc",
    (
        {"endpoint": "/Users", "schema": CORE_USER_SCHEMA},
        {"name": "User", "schema": CORE_USER_SCHEMA},
        {"name": "User", "endpoint": "/Users"},
        {"name": "User", "endpoint": "/Users", "schema": "not a uri"},
        {"name": "", "endpoint": "/Users", "schema": CORE_USER_SCHEMA},
    ),
)
def test_bad_resource_type_document_is_rejected(resource_type_doc):
    with pytest.raises(SchemaLoadError, match="malformed schema definitions"):
        build_resource_types(_schema_docs(), [resource_type_doc])


def test_resource_type_referring_unknown_schema_is_rejected():
    resource_type_doc = copy.deepcopy(USER_RESOURCE_TYPE)
    resource_type_doc["schemaExtensions"] = [{"schema": "urn:example:extension:2.0:User"}]

    with pytest.raises(SchemaLoadError, match="refers to unknown schema"):
        build_resource_types(_schema_docs(), [resource_type_doc])


def test_schema_defined_more_than_once_is_rejected():
    with pytest.raises(SchemaLoadError, match="defined more than once"):
        build_resource_types(_schema_docs() + [USER.to_dict()], [USER_RESOURCE_TYPE])


def test_colliding_attribute_names_are_rejected():
    extension = {
        "id": "urn:example:extension:2.0:User",
        "attributes": [{"name": "displayName", "type": "string"}],
    }
    resource_type_doc = copy.deepcopy(USER_RESOURCE_TYPE)
    resource_type_doc["schemaExtensions"].append({"schema": "urn:example:extension:2.0:User"})

    with pytest.raises(SchemaLoadError, match="'displayName' defined more than once"):
        build_resource_types(_schema_docs() + [extension], [resource_type_doc])
