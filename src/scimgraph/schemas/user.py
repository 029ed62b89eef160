from typing import Sequence

from scimgraph.data.attrs import (
    AttributeDefinition,
    AttributeMutability,
    AttributeReturn,
    AttributeUniqueness,
)
from scimgraph.data.constants import CORE_USER_SCHEMA, ENTERPRISE_USER_SCHEMA, AttributeType
from scimgraph.data.schemas import SchemaDefinition


def _multi_valued_complex(
    name: str,
    description: str,
    value_type: AttributeType = AttributeType.STRING,
    canonical_types: Sequence[str] = (),
    reference_types: Sequence[str] = (),
) -> AttributeDefinition:
    """
    Builds multi-valued complex attribute with `value`, `display`, `type`, and `primary`
    sub-attributes, as used by most multi-valued attributes of the core User schema.
    """
    return AttributeDefinition(
        name=name,
        type=AttributeType.COMPLEX,
        multi_valued=True,
        description=description,
        sub_attributes=(
            AttributeDefinition(
                name="value",
                type=value_type,
                description=f"Value of the {name} item.",
                reference_types=reference_types,
            ),
            AttributeDefinition(
                name="display",
                type=AttributeType.STRING,
                description="A human-readable name, primarily used for display purposes.",
            ),
            AttributeDefinition(
                name="type",
                type=AttributeType.STRING,
                description="A label indicating the attribute's function.",
                canonical_values=canonical_types,
            ),
            AttributeDefinition(
                name="primary",
                type=AttributeType.BOOLEAN,
                description=(
                    "A Boolean value indicating the 'primary' or preferred value of the "
                    "attribute. The value 'true' appears no more than once."
                ),
            ),
        ),
    )


def _string(name: str, description: str, **kwargs) -> AttributeDefinition:
    return AttributeDefinition(
        name=name, type=AttributeType.STRING, description=description, **kwargs
    )


USER = SchemaDefinition(
    id=CORE_USER_SCHEMA,
    name="User",
    description="User Account",
    attributes=(
        _string(
            "userName",
            "Unique identifier for the User, typically used by the user to directly "
            "authenticate to the service provider.",
            required=True,
            uniqueness=AttributeUniqueness.SERVER,
        ),
        AttributeDefinition(
            name="name",
            type=AttributeType.COMPLEX,
            description="The components of the user's real name.",
            sub_attributes=(
                _string("formatted", "The full name, formatted for display."),
                _string("familyName", "The family name of the User."),
                _string("givenName", "The given name of the User."),
                _string("middleName", "The middle name(s) of the User."),
                _string("honorificPrefix", "The honorific prefix(es) of the User."),
                _string("honorificSuffix", "The honorific suffix(es) of the User."),
            ),
        ),
        _string("displayName", "The name of the User, suitable for display to end-users."),
        _string("nickName", "The casual way to address the user in real life."),
        AttributeDefinition(
            name="profileUrl",
            type=AttributeType.REFERENCE,
            description="A fully qualified URL pointing to the User's online profile.",
            reference_types=("external",),
        ),
        _string("title", "The user's title, such as 'Vice President'."),
        _string(
            "userType",
            "Used to identify the relationship between the organization and the user.",
        ),
        _string("preferredLanguage", "Indicates the User's preferred written or spoken language."),
        _string("locale", "Used to indicate the User's default location."),
        _string("timezone", "The User's time zone in the 'Olson' time zone database format."),
        AttributeDefinition(
            name="active",
            type=AttributeType.BOOLEAN,
            description="A Boolean value indicating the User's administrative status.",
        ),
        _string(
            "password",
            "The User's cleartext password, used to set an initial password or to reset it.",
            mutability=AttributeMutability.WRITE_ONLY,
            returned=AttributeReturn.NEVER,
        ),
        _multi_valued_complex(
            "emails",
            "Email addresses for the user.",
            canonical_types=("work", "home", "other"),
        ),
        _multi_valued_complex(
            "phoneNumbers",
            "Phone numbers for the User.",
            canonical_types=("work", "home", "mobile", "fax", "pager", "other"),
        ),
        _multi_valued_complex(
            "ims",
            "Instant messaging addresses for the User.",
            canonical_types=("aim", "gtalk", "icq", "xmpp", "msn", "skype", "qq", "yahoo"),
        ),
        _multi_valued_complex(
            "photos",
            "URLs of photos of the User.",
            value_type=AttributeType.REFERENCE,
            canonical_types=("photo", "thumbnail"),
            reference_types=("external",),
        ),
        AttributeDefinition(
            name="addresses",
            type=AttributeType.COMPLEX,
            multi_valued=True,
            description="A physical mailing address for this User.",
            sub_attributes=(
                _string("formatted", "The full mailing address, formatted for display."),
                _string("streetAddress", "The full street address component."),
                _string("locality", "The city or locality component."),
                _string("region", "The state or region component."),
                _string("postalCode", "The zip code or postal code component."),
                _string("country", "The country name component."),
                _string(
                    "type",
                    "A label indicating the attribute's function.",
                    canonical_values=("work", "home", "other"),
                ),
                AttributeDefinition(
                    name="primary",
                    type=AttributeType.BOOLEAN,
                    description="Indicates the primary address.",
                ),
            ),
        ),
        AttributeDefinition(
            name="groups",
            type=AttributeType.COMPLEX,
            multi_valued=True,
            mutability=AttributeMutability.READ_ONLY,
            description="A list of groups to which the user belongs.",
            sub_attributes=(
                _string(
                    "value",
                    "The identifier of the User's group.",
                    mutability=AttributeMutability.READ_ONLY,
                ),
                AttributeDefinition(
                    name="$ref",
                    type=AttributeType.REFERENCE,
                    description="The URI of the corresponding 'Group' resource.",
                    mutability=AttributeMutability.READ_ONLY,
                    reference_types=("User", "Group"),
                ),
                _string(
                    "display",
                    "A human-readable name, primarily used for display purposes.",
                    mutability=AttributeMutability.READ_ONLY,
                ),
                _string(
                    "type",
                    "A label indicating the attribute's function.",
                    mutability=AttributeMutability.READ_ONLY,
                    canonical_values=("direct", "indirect"),
                ),
            ),
        ),
        _multi_valued_complex("entitlements", "A list of entitlements for the User."),
        _multi_valued_complex("roles", "A list of roles for the User."),
        _multi_valued_complex(
            "x509Certificates",
            "A list of certificates issued to the User.",
            value_type=AttributeType.BINARY,
        ),
    ),
)


ENTERPRISE_USER = SchemaDefinition(
    id=ENTERPRISE_USER_SCHEMA,
    name="EnterpriseUser",
    description="Enterprise User",
    attributes=(
        _string(
            "employeeNumber",
            "Numeric or alphanumeric identifier assigned to a person by the organization.",
        ),
        _string("costCenter", "Identifies the name of a cost center."),
        _string("organization", "Identifies the name of an organization."),
        _string("division", "Identifies the name of a division."),
        _string("department", "Identifies the name of a department."),
        AttributeDefinition(
            name="manager",
            type=AttributeType.COMPLEX,
            description="The User's manager.",
            sub_attributes=(
                _string("value", "The id of the SCIM resource representing the User's manager."),
                AttributeDefinition(
                    name="$ref",
                    type=AttributeType.REFERENCE,
                    description="The URI of the SCIM resource representing the User's manager.",
                    reference_types=("User",),
                ),
                _string(
                    "displayName",
                    "The displayName of the User's manager.",
                    mutability=AttributeMutability.READ_ONLY,
                ),
            ),
        ),
    ),
)


USER_RESOURCE_TYPE = {
    "id": "User",
    "name": "User",
    "endpoint": "/Users",
    "description": "User Account",
    "schema": CORE_USER_SCHEMA,
    "schemaExtensions": [{"schema": ENTERPRISE_USER_SCHEMA, "required": False}],
}
