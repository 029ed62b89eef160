from typing import Any, Optional

import pytest

from scimgraph.data.attrs import AttributeDefinition, AttributeMutability, AttributeUniqueness
from scimgraph.data.constants import ENTERPRISE_USER_SCHEMA, AttributeType
from scimgraph.data.schemas import SchemaDefinition
from scimgraph.registry import SchemaRegistry
from scimgraph.schemas import (
    ENTERPRISE_USER,
    GROUP,
    GROUP_RESOURCE_TYPE,
    USER,
    USER_RESOURCE_TYPE,
    DocumentSchemaSource,
)
from scimgraph.storage import InMemoryStorage

ACCOUNT_SCHEMA = "urn:example:scim:schemas:core:2.0:Account"

ACCOUNT = SchemaDefinition(
    id=ACCOUNT_SCHEMA,
    name="Account",
    attributes=(
        AttributeDefinition(
            name="userName",
            type=AttributeType.STRING,
            required=True,
            mutability=AttributeMutability.IMMUTABLE,
            uniqueness=AttributeUniqueness.SERVER,
        ),
        AttributeDefinition(
            name="serial",
            type=AttributeType.STRING,
            case_exact=True,
            mutability=AttributeMutability.IMMUTABLE,
        ),
        AttributeDefinition(
            name="badge",
            type=AttributeType.STRING,
            case_exact=True,
            uniqueness=AttributeUniqueness.GLOBAL,
        ),
        AttributeDefinition(name="tags", type=AttributeType.STRING, multi_valued=True),
        AttributeDefinition(
            name="profile",
            type=AttributeType.COMPLEX,
            sub_attributes=(
                AttributeDefinition(name="level", type=AttributeType.INTEGER, required=True),
                AttributeDefinition(name="score", type=AttributeType.DECIMAL),
                AttributeDefinition(name="since", type=AttributeType.DATETIME),
                AttributeDefinition(
                    name="contact",
                    type=AttributeType.COMPLEX,
                    sub_attributes=(AttributeDefinition(name="email", type=AttributeType.STRING),),
                ),
            ),
        ),
        AttributeDefinition(
            name="devices",
            type=AttributeType.COMPLEX,
            multi_valued=True,
            sub_attributes=(
                AttributeDefinition(name="name", type=AttributeType.STRING, required=True),
                AttributeDefinition(
                    name="ports",
                    type=AttributeType.COMPLEX,
                    multi_valued=True,
                    sub_attributes=(
                        AttributeDefinition(name="number", type=AttributeType.INTEGER),
                        AttributeDefinition(name="protocol", type=AttributeType.STRING),
                    ),
                ),
                AttributeDefinition(
                    name="location",
                    type=AttributeType.COMPLEX,
                    sub_attributes=(AttributeDefinition(name="site", type=AttributeType.STRING),),
                ),
            ),
        ),
    ),
)

ACCOUNT_RESOURCE_TYPE = {
    "id": "Account",
    "name": "Account",
    "endpoint": "/Accounts",
    "schema": ACCOUNT_SCHEMA,
}


def create_schema_source() -> DocumentSchemaSource:
    return DocumentSchemaSource(
        schemas=[USER.to_dict(), ENTERPRISE_USER.to_dict(), GROUP.to_dict(), ACCOUNT.to_dict()],
        resource_types=[USER_RESOURCE_TYPE, GROUP_RESOURCE_TYPE, ACCOUNT_RESOURCE_TYPE],
    )


class FakeStorage:
    """
    Storage answering uniqueness checks from the `taken` mapping of
    `(attribute_name, value)` to the id of the record holding the value.
    """

    def __init__(self, taken: Optional[dict[tuple[str, Any], str]] = None):
        self.taken = taken or {}
        self.calls: list[tuple[Optional[str], str, Any, Optional[str]]] = []

    def execute(self, predicate, resource_type):
        return iter(())

    def exists_with_value(self, resource_type, attribute_name, value, excluding_id=None):
        self.calls.append((resource_type, attribute_name, value, excluding_id))
        owner = self.taken.get((attribute_name, value))
        return owner is not None and owner != excluding_id


@pytest.fixture
def registry() -> SchemaRegistry:
    registry = SchemaRegistry(create_schema_source())
    registry.load()
    return registry


@pytest.fixture
def user_schema(registry):
    return registry.get("User")


@pytest.fixture
def group_schema(registry):
    return registry.get("Group")


@pytest.fixture
def account_schema(registry):
    return registry.get("Account")


@pytest.fixture
def storage(registry) -> InMemoryStorage:
    return InMemoryStorage(registry)


@pytest.fixture
def user_data():
    return {
        "schemas": [
            "urn:ietf:params:scim:schemas:core:2.0:User",
            ENTERPRISE_USER_SCHEMA,
        ],
        "externalId": "1",
        "userName": "bjensen@example.com",
        "name": {
            "formatted": "Ms. Barbara J Jensen, III",
            "familyName": "Jensen",
            "givenName": "Barbara",
            "middleName": "Jane",
            "honorificPrefix": "Ms.",
            "honorificSuffix": "III",
        },
        "displayName": "Babs Jensen",
        "nickName": "Babs",
        "profileUrl": "https://login.example.com/bjensen",
        "emails": [
            {"value": "bjensen@example.com", "type": "work", "primary": True},
            {"value": "babs@jensen.org", "type": "home"},
        ],
        "addresses": [
            {
                "streetAddress": "100 Universal City Plaza",
                "locality": "Hollywood",
                "region": "CA",
                "postalCode": "91608",
                "country": "US",
                "formatted": "100 Universal City Plaza\nHollywood, CA 91608 USA",
                "type": "work",
            },
        ],
        "phoneNumbers": [
            {"value": "555-555-5555", "type": "work"},
            {"value": "555-555-4444", "type": "mobile"},
        ],
        "ims": [{"value": "someaimhandle", "type": "aim"}],
        "userType": "Employee",
        "title": "Tour Guide",
        "preferredLanguage": "en-US",
        "locale": "en-US",
        "timezone": "America/Los_Angeles",
        "active": True,
        "password": "t1meMa$heen",
        "x509Certificates": [{"value": "aGVsbG8gd29ybGQ="}],
        ENTERPRISE_USER_SCHEMA: {
            "employeeNumber": "701984",
            "costCenter": "4130",
            "organization": "Universal Studios",
            "division": "Theme Park",
            "department": "Tour Operations",
            "manager": {
                "value": "26118915-6090-4610-87e4-49d8ca9f808d",
                "$ref": "../Users/26118915-6090-4610-87e4-49d8ca9f808d",
            },
        },
    }


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()
