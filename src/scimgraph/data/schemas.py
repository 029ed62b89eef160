from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Sequence

from scimgraph.data.attrs import (
    AttributeDefinition,
    AttributeMutability,
    AttributeReturn,
    AttributeUniqueness,
)
from scimgraph.data.constants import RESOURCE_TYPE_SCHEMA, SCHEMA_SCHEMA, AttributeType
from scimgraph.data.identifiers import AttrName, SchemaUri
from scimgraph.data.scim_data import Missing, find_key, get_value

COMMON_ATTRIBUTES: tuple[AttributeDefinition, ...] = (
    AttributeDefinition(
        name="id",
        type=AttributeType.STRING,
        description=(
            "A unique identifier for a SCIM resource as defined by the service provider."
        ),
        case_exact=True,
        mutability=AttributeMutability.READ_ONLY,
        returned=AttributeReturn.ALWAYS,
        uniqueness=AttributeUniqueness.SERVER,
    ),
    AttributeDefinition(
        name="externalId",
        type=AttributeType.STRING,
        description=(
            "A String that is an identifier for the resource as defined by the "
            "provisioning client."
        ),
        case_exact=True,
    ),
    AttributeDefinition(
        name="meta",
        type=AttributeType.COMPLEX,
        description="A complex attribute containing resource metadata.",
        mutability=AttributeMutability.READ_ONLY,
        sub_attributes=(
            AttributeDefinition(
                name="resourceType",
                type=AttributeType.STRING,
                case_exact=True,
                mutability=AttributeMutability.READ_ONLY,
            ),
            AttributeDefinition(
                name="created",
                type=AttributeType.DATETIME,
                mutability=AttributeMutability.READ_ONLY,
            ),
            AttributeDefinition(
                name="lastModified",
                type=AttributeType.DATETIME,
                mutability=AttributeMutability.READ_ONLY,
            ),
            AttributeDefinition(
                name="location",
                type=AttributeType.REFERENCE,
                case_exact=True,
                mutability=AttributeMutability.READ_ONLY,
                reference_types=("uri",),
            ),
            AttributeDefinition(
                name="version",
                type=AttributeType.STRING,
                case_exact=True,
                mutability=AttributeMutability.READ_ONLY,
            ),
        ),
    ),
)


@dataclass(frozen=True)
class SchemaDefinition:
    """
    Schema (core or extension) as published in RFC-7643, section 7: URI, name, and the
    attributes it defines.
    """

    id: SchemaUri
    name: str = ""
    description: str = field(default="", compare=False)
    attributes: tuple[AttributeDefinition, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "id", SchemaUri(self.id))
        object.__setattr__(self, "attributes", tuple(self.attributes))

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemas": [SCHEMA_SCHEMA],
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "attributes": [attr.to_dict() for attr in self.attributes],
        }


@dataclass(frozen=True)
class SchemaExtensionRef:
    schema: SchemaUri
    required: bool = False

    def __post_init__(self):
        object.__setattr__(self, "schema", SchemaUri(self.schema))


@dataclass(frozen=True)
class ResourceTypeSchema:
    """
    Complete, flattened view of a resource type: the common attributes, the attributes of
    the core schema, and the attributes of all schema extensions, in this order. Every
    attribute is bound to the schema it comes from, so consumers never need to special-case
    extensions.

    Instances are immutable. Reloading schemas produces new instances.

    Raises:
        ValueError: If attribute names are not unique (case-insensitive).
    """

    name: str
    endpoint: str
    schema: SchemaUri
    attributes: tuple[AttributeDefinition, ...]
    extensions: tuple[SchemaExtensionRef, ...] = ()
    description: str = field(default="", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "schema", SchemaUri(self.schema))
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "extensions", tuple(self.extensions))
        seen: dict[AttrName, AttributeDefinition] = {}
        for attr in self.attributes:
            existing = seen.get(attr.name)
            if existing is not None:
                raise ValueError(
                    f"attribute '{attr.name}' defined more than once in resource type "
                    f"{self.name!r} (schemas: {existing.schema!r}, {attr.schema!r})"
                )
            seen[attr.name] = attr

    @classmethod
    def build(
        cls,
        name: str,
        endpoint: str,
        schema: SchemaDefinition,
        extensions: Sequence[tuple[SchemaDefinition, bool]] = (),
        description: str = "",
    ) -> "ResourceTypeSchema":
        """
        Builds a resource type from its core schema and schema extensions, merging all
        attributes into one flat, ordered list.

        Args:
            name: The resource type name, e.g. `User`.
            endpoint: The resource type endpoint, e.g. `/Users`.
            schema: The core schema.
            extensions: Schema extensions, each with a flag telling whether it is required.
            description: The resource type description.
        """
        attributes = [attr.bind(schema.id) for attr in COMMON_ATTRIBUTES]
        attributes.extend(attr.bind(schema.id) for attr in schema.attributes)
        for extension, _ in extensions:
            attributes.extend(attr.bind(extension.id) for attr in extension.attributes)
        return cls(
            name=name,
            endpoint=endpoint,
            schema=schema.id,
            attributes=tuple(attributes),
            extensions=tuple(
                SchemaExtensionRef(schema=extension.id, required=required)
                for extension, required in extensions
            ),
            description=description,
        )

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(self.attributes)

    @property
    def schemas(self) -> list[SchemaUri]:
        """
        All schema URIs by which the resource type is described, the core one being first.
        """
        return [self.schema] + [extension.schema for extension in self.extensions]

    def has_schema(self, schema: str) -> bool:
        return schema in self.schemas

    def is_extension(self, schema: Optional[str]) -> bool:
        return schema is not None and any(
            extension.schema == schema for extension in self.extensions
        )

    def get_attr(self, name: str, schema: Optional[str] = None) -> Optional[AttributeDefinition]:
        """
        Returns the top-level attribute with the provided `name` (case-insensitive). If
        `schema` is provided, only attributes bound to this schema are considered.
        """
        for attr in self.attributes:
            if attr.name == name and (schema is None or attr.schema == schema):
                return attr
        return None

    def get_value(self, data: Mapping, attr: AttributeDefinition) -> Any:
        """
        Reads the value of the top-level attribute from the resource data. Values of
        extension attributes are read from the extension's container, e.g.
        `{"urn:ietf:params:scim:schemas:extension:enterprise:2.0:User": {...}}`.

        Returns:
            The value, or `Missing` if it is not there.
        """
        if self.is_extension(attr.schema):
            container = get_value(data, str(attr.schema))
            if container is Missing:
                return Missing
            return get_value(container, attr.name)
        return get_value(data, attr.name)

    def pop_value(self, data: dict, attr: AttributeDefinition) -> Any:
        """
        Removes the value of the top-level attribute from the resource data, and returns it
        (`Missing` if not there).
        """
        container: Any = data
        if self.is_extension(attr.schema):
            container = get_value(data, str(attr.schema))
            if not isinstance(container, dict):
                return Missing
        key = find_key(container, attr.name)
        if key is None:
            return Missing
        return container.pop(key)

    def to_dict(self) -> dict[str, Any]:
        """
        Converts the resource type to a dictionary, as specified in RFC-7643, section 6.
        """
        output: dict[str, Any] = {
            "schemas": [RESOURCE_TYPE_SCHEMA],
            "id": self.name,
            "name": self.name,
            "endpoint": self.endpoint,
            "description": self.description,
            "schema": str(self.schema),
        }
        if self.extensions:
            output["schemaExtensions"] = [
                {"schema": str(extension.schema), "required": extension.required}
                for extension in self.extensions
            ]
        return output
