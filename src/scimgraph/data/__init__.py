from scimgraph.data.attrs import (
    AttributeDefinition,
    AttributeMutability,
    AttributeReturn,
    AttributeUniqueness,
)
from scimgraph.data.constants import AttributeType
from scimgraph.data.filter import Filter
from scimgraph.data.identifiers import AttrName, AttrPath, SchemaUri
from scimgraph.data.operator import (
    Comparison,
    ComparisonOperator,
    FilterNode,
    Logical,
    LogicalOperator,
    Presence,
    ValuePathFilter,
)
from scimgraph.data.path import ResolvedPath, resolve_path
from scimgraph.data.schemas import ResourceTypeSchema, SchemaDefinition, SchemaExtensionRef
from scimgraph.data.scim_data import Missing

__all__ = [
    "AttrName",
    "AttrPath",
    "SchemaUri",
    "AttributeDefinition",
    "AttributeMutability",
    "AttributeReturn",
    "AttributeType",
    "AttributeUniqueness",
    "Comparison",
    "ComparisonOperator",
    "Filter",
    "FilterNode",
    "Logical",
    "LogicalOperator",
    "Presence",
    "ValuePathFilter",
    "ResolvedPath",
    "resolve_path",
    "ResourceTypeSchema",
    "SchemaDefinition",
    "SchemaExtensionRef",
    "Missing",
]
