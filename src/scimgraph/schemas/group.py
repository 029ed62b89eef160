from scimgraph.data.attrs import AttributeDefinition, AttributeMutability
from scimgraph.data.constants import CORE_GROUP_SCHEMA, AttributeType
from scimgraph.data.schemas import SchemaDefinition

GROUP = SchemaDefinition(
    id=CORE_GROUP_SCHEMA,
    name="Group",
    description="Group",
    attributes=(
        AttributeDefinition(
            name="displayName",
            type=AttributeType.STRING,
            description="A human-readable name for the Group.",
            required=True,
        ),
        AttributeDefinition(
            name="members",
            type=AttributeType.COMPLEX,
            multi_valued=True,
            description="A list of members of the Group.",
            sub_attributes=(
                AttributeDefinition(
                    name="value",
                    type=AttributeType.STRING,
                    description="Identifier of the member of this Group.",
                    mutability=AttributeMutability.IMMUTABLE,
                ),
                AttributeDefinition(
                    name="$ref",
                    type=AttributeType.REFERENCE,
                    description="The URI corresponding to a SCIM resource that is a member.",
                    mutability=AttributeMutability.IMMUTABLE,
                    reference_types=("User", "Group"),
                ),
                AttributeDefinition(
                    name="type",
                    type=AttributeType.STRING,
                    description="A label indicating the type of resource, e.g., 'User'.",
                    mutability=AttributeMutability.IMMUTABLE,
                    canonical_values=("User", "Group"),
                ),
            ),
        ),
    ),
)


GROUP_RESOURCE_TYPE = {
    "id": "Group",
    "name": "Group",
    "endpoint": "/Groups",
    "description": "Group",
    "schema": CORE_GROUP_SCHEMA,
}
