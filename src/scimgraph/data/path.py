from dataclasses import dataclass
from typing import Optional

from scimgraph.data.attrs import AttributeDefinition
from scimgraph.data.constants import AttributeType
from scimgraph.data.identifiers import AttrName, AttrPath, SchemaUri
from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.error import InvalidPathError, UnknownAttributeError


@dataclass(frozen=True)
class ResolvedPath:
    """
    Attribute path bound to the chain of attribute definitions it resolves to, starting
    with the top-level attribute.
    """

    attr_path: AttrPath
    attrs: tuple[AttributeDefinition, ...]

    @property
    def segments(self) -> tuple[AttrName, ...]:
        return tuple(attr.name for attr in self.attrs)

    @property
    def attr(self) -> AttributeDefinition:
        """The attribute the path points to."""
        return self.attrs[-1]

    @property
    def type(self) -> AttributeType:
        """Effective type, used for literal coercion."""
        return self.attr.type

    @property
    def multi_valued(self) -> bool:
        return self.attr.multi_valued

    @property
    def schema(self) -> Optional[SchemaUri]:
        return self.attrs[0].schema


def resolve_path(
    attr_path: AttrPath,
    schema: ResourceTypeSchema,
    parent: Optional[ResolvedPath] = None,
) -> ResolvedPath:
    """
    Resolves the attribute path against the resource type schema. Attribute names
    are matched case-insensitively. The result depends on the schema only, so resolving
    the same path against the same schema always gives an equal result.

    Args:
        attr_path: The path to resolve.
        schema: Schema of the resource type the path refers to.
        parent: Resolved path of the enclosing complex attribute, if `attr_path` is relative
            to it (paths inside value path filters).

    Raises:
        UnknownAttributeError: If any segment does not match an attribute at its nesting
            level, or the schema URI prefix is not one of the resource type's schemas.
        InvalidPathError: If a non-complex attribute is followed by a sub-path, or a relative
            path carries a schema URI prefix.
    """
    if parent is None:
        if attr_path.schema is not None and not schema.has_schema(attr_path.schema):
            raise UnknownAttributeError(attr_path, attr_path.schema)
        top_level = schema.get_attr(attr_path.attr, attr_path.schema)
        if top_level is None:
            raise UnknownAttributeError(attr_path, attr_path.attr)
        chain = [top_level]
        remaining = attr_path.segments[1:]
        full_path = attr_path
    else:
        if attr_path.schema is not None:
            raise InvalidPathError(
                attr_path, "schema URI prefix is not allowed inside value path filter"
            )
        chain = list(parent.attrs)
        remaining = attr_path.segments
        full_path = parent.attr_path.child(*attr_path.segments)

    for segment in remaining:
        current = chain[-1]
        if not current.is_complex:
            raise InvalidPathError(
                full_path, f"'{current.name}' is not complex and has no sub-attributes"
            )
        sub_attr = current.get_sub_attr(segment)
        if sub_attr is None:
            raise UnknownAttributeError(full_path, segment)
        chain.append(sub_attr)
    return ResolvedPath(attr_path=full_path, attrs=tuple(chain))
