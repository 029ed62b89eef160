from scimgraph.schemas.group import GROUP, GROUP_RESOURCE_TYPE
from scimgraph.schemas.loader import (
    AttributeDocument,
    ResourceTypeDocument,
    SchemaDocument,
    build_resource_types,
)
from scimgraph.schemas.sources import (
    DocumentSchemaSource,
    JsonFileSchemaSource,
    default_schema_source,
)
from scimgraph.schemas.user import ENTERPRISE_USER, USER, USER_RESOURCE_TYPE

__all__ = [
    "AttributeDocument",
    "DocumentSchemaSource",
    "ENTERPRISE_USER",
    "GROUP",
    "GROUP_RESOURCE_TYPE",
    "JsonFileSchemaSource",
    "ResourceTypeDocument",
    "SchemaDocument",
    "USER",
    "USER_RESOURCE_TYPE",
    "build_resource_types",
    "default_schema_source",
]
