from collections.abc import Mapping
from typing import Any, Sequence

import marshmallow
from marshmallow import fields, validate

from scimgraph.data.attrs import (
    AttributeDefinition,
    AttributeMutability,
    AttributeReturn,
    AttributeUniqueness,
)
from scimgraph.data.constants import AttributeType
from scimgraph.data.identifiers import AttrName, SchemaUri
from scimgraph.data.schemas import ResourceTypeSchema, SchemaDefinition
from scimgraph.error import SchemaLoadError


def _validate_attr_name(value: str) -> None:
    try:
        AttrName(value)
    except ValueError as e:
        raise marshmallow.ValidationError(str(e))


def _validate_schema_uri(value: str) -> None:
    try:
        SchemaUri(value)
    except ValueError as e:
        raise marshmallow.ValidationError(str(e))


def _one_of(enum: type) -> validate.OneOf:
    return validate.OneOf([item.value for item in enum])


class AttributeDocument(marshmallow.Schema):
    """
    Attribute definition, as represented in schema documents (RFC-7643, section 7).
    Loads to `AttributeDefinition`.
    """

    class Meta:
        unknown = marshmallow.EXCLUDE

    name = fields.String(required=True, validate=_validate_attr_name)
    type = fields.String(required=True, validate=_one_of(AttributeType))
    multi_valued = fields.Boolean(data_key="multiValued", load_default=False)
    description = fields.String(load_default="")
    required = fields.Boolean(load_default=False)
    case_exact = fields.Boolean(data_key="caseExact", load_default=False)
    mutability = fields.String(
        load_default=AttributeMutability.READ_WRITE.value, validate=_one_of(AttributeMutability)
    )
    returned = fields.String(
        load_default=AttributeReturn.DEFAULT.value, validate=_one_of(AttributeReturn)
    )
    uniqueness = fields.String(
        load_default=AttributeUniqueness.NONE.value, validate=_one_of(AttributeUniqueness)
    )
    canonical_values = fields.List(fields.Raw(), data_key="canonicalValues", load_default=list)
    reference_types = fields.List(fields.String(), data_key="referenceTypes", load_default=list)
    sub_attributes = fields.List(
        fields.Nested(lambda: AttributeDocument()),
        data_key="subAttributes",
        load_default=list,
    )

    @marshmallow.validates_schema
    def _validate_sub_attributes(self, data: dict[str, Any], **kwargs: Any) -> None:
        if data.get("sub_attributes") and data.get("type") != AttributeType.COMPLEX.value:
            raise marshmallow.ValidationError(
                "only complex attributes can have sub-attributes", "subAttributes"
            )

    @marshmallow.post_load
    def _make_attribute(self, data: dict[str, Any], **kwargs: Any) -> AttributeDefinition:
        try:
            return AttributeDefinition(**data)
        except ValueError as e:
            raise marshmallow.ValidationError(str(e))


class SchemaDocument(marshmallow.Schema):
    """
    Schema document (RFC-7643, section 7). Loads to `SchemaDefinition`.
    """

    class Meta:
        unknown = marshmallow.EXCLUDE

    id = fields.String(required=True, validate=_validate_schema_uri)
    name = fields.String(load_default="")
    description = fields.String(load_default="")
    attributes = fields.List(fields.Nested(AttributeDocument), required=True)

    @marshmallow.post_load
    def _make_schema(self, data: dict[str, Any], **kwargs: Any) -> SchemaDefinition:
        return SchemaDefinition(**data)


class SchemaExtensionDocument(marshmallow.Schema):
    class Meta:
        unknown = marshmallow.EXCLUDE

    schema = fields.String(required=True, validate=_validate_schema_uri)
    required = fields.Boolean(load_default=False)


class ResourceTypeDocument(marshmallow.Schema):
    """
    Resource type document (RFC-7643, section 6). Loads to dictionary with the document's
    contents; schemas are bound by `build_resource_types`.
    """

    class Meta:
        unknown = marshmallow.EXCLUDE

    id = fields.String()
    name = fields.String(required=True, validate=validate.Length(min=1))
    endpoint = fields.String(required=True, validate=validate.Length(min=1))
    description = fields.String(load_default="")
    schema = fields.String(required=True, validate=_validate_schema_uri)
    schema_extensions = fields.List(
        fields.Nested(SchemaExtensionDocument),
        data_key="schemaExtensions",
        load_default=list,
    )


def build_resource_types(
    schema_docs: Sequence[Mapping[str, Any]],
    resource_type_docs: Sequence[Mapping[str, Any]],
) -> list[ResourceTypeSchema]:
    """
    Loads schema and resource type documents, and flattens every resource type with its
    schemas into `ResourceTypeSchema`.

    Raises:
        SchemaLoadError: If any document is malformed, a resource type refers to unknown
            schema, or attribute names collide after flattening.
    """
    try:
        schemas: list[SchemaDefinition] = SchemaDocument(many=True).load(schema_docs)
        resource_types: list[dict[str, Any]] = ResourceTypeDocument(many=True).load(
            resource_type_docs
        )
    except marshmallow.ValidationError as e:
        raise SchemaLoadError(f"malformed schema definitions: {e.messages}") from e

    schemas_by_id: dict[SchemaUri, SchemaDefinition] = {}
    for schema in schemas:
        if schema.id in schemas_by_id:
            raise SchemaLoadError(f"schema {schema.id!r} defined more than once")
        schemas_by_id[schema.id] = schema

    def get_schema(resource_type: str, uri: str) -> SchemaDefinition:
        schema_ = schemas_by_id.get(SchemaUri(uri))
        if schema_ is None:
            raise SchemaLoadError(
                f"resource type {resource_type!r} refers to unknown schema {uri!r}"
            )
        return schema_

    output = []
    for resource_type in resource_types:
        name = resource_type["name"]
        try:
            output.append(
                ResourceTypeSchema.build(
                    name=name,
                    endpoint=resource_type["endpoint"],
                    schema=get_schema(name, resource_type["schema"]),
                    extensions=[
                        (get_schema(name, extension["schema"]), extension["required"])
                        for extension in resource_type["schema_extensions"]
                    ],
                    description=resource_type["description"],
                )
            )
        except ValueError as e:
            raise SchemaLoadError(str(e)) from e
    return output
