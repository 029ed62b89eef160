from typing import Callable, Optional

from scimgraph.data import operator as op
from scimgraph.data.path import ResolvedPath, resolve_path
from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.error import InvalidPathError, OperatorTypeError, TypeMismatchError
from scimgraph.query.predicate import (
    AnyElement,
    Compare,
    Exists,
    Logical,
    PropertyRef,
    QueryPredicate,
)

_Build = Callable[[PropertyRef, int], QueryPredicate]


def lower(node: op.FilterNode, schema: ResourceTypeSchema) -> QueryPredicate:
    """
    Lowers the filter tree to the backend-neutral query predicate. Every attribute path is
    resolved against the schema, and every literal is coerced to the type of the attribute
    it is compared with. The predicate has the same shape as the filter; child order is
    preserved.

    Paths that cross a multi-valued complex attribute, including value path filters over
    such attributes, become existential `AnyElement` predicates: at least one element must
    satisfy the whole inner predicate. The same applies to nested value path filters, at every
    level.

    Args:
        node: Root of the filter tree.
        schema: Schema of the resource type the filter is evaluated against.

    Raises:
        UnknownAttributeError: If the filter references unknown attribute.
        InvalidPathError: If the filter contains sub-path of non-complex attribute, or value
            path filter over non-complex attribute.
        OperatorTypeError: If the operator is not defined for the attribute type.
        TypeMismatchError: If the literal can not be coerced to the attribute type.
    """
    return _Lowering(schema).lower(node, parent=None, base=0)


class _Lowering:
    def __init__(self, schema: ResourceTypeSchema):
        self._schema = schema

    def lower(
        self, node: op.FilterNode, parent: Optional[ResolvedPath], base: int
    ) -> QueryPredicate:
        if isinstance(node, op.Comparison):
            return self._lower_comparison(node, parent, base)
        if isinstance(node, op.Presence):
            resolved = resolve_path(node.attr_path, self._schema, parent)
            return self._scoped(resolved, base, lambda ref, _: Exists(ref))
        if isinstance(node, op.ValuePathFilter):
            return self._lower_value_path(node, parent, base)
        if isinstance(node, op.Logical):
            return Logical(
                operator=node.operator,
                children=tuple(self.lower(child, parent, base) for child in node.children),
            )
        raise TypeError(f"unsupported filter node type '{type(node).__name__}'")

    def _lower_comparison(
        self, node: op.Comparison, parent: Optional[ResolvedPath], base: int
    ) -> QueryPredicate:
        resolved = resolve_path(node.attr_path, self._schema, parent)
        operator = node.operator
        if resolved.attr.is_complex:
            value_attr = resolved.attr.get_sub_attr("value")
            if value_attr is None:
                raise OperatorTypeError(resolved.attr_path, operator.value, resolved.type.value)
            resolved = ResolvedPath(
                attr_path=resolved.attr_path.child(value_attr.name),
                attrs=resolved.attrs + (value_attr,),
            )

        attr = resolved.attr
        if node.value is None:
            if operator not in (op.ComparisonOperator.EQ, op.ComparisonOperator.NE):
                raise OperatorTypeError(resolved.attr_path, operator.value, "null")
        elif attr.type not in op.SUPPORTED_TYPES[operator]:
            raise OperatorTypeError(resolved.attr_path, operator.value, attr.type.value)

        try:
            value = attr.coerce(node.value)
        except ValueError:
            raise TypeMismatchError(resolved.attr_path, node.value, attr.type.value)
        return self._scoped(resolved, base, lambda ref, _: Compare(ref, operator, value))

    def _lower_value_path(
        self, node: op.ValuePathFilter, parent: Optional[ResolvedPath], base: int
    ) -> QueryPredicate:
        resolved = resolve_path(node.attr_path, self._schema, parent)
        if not resolved.attr.is_complex:
            raise InvalidPathError(
                resolved.attr_path, "value path filter requires complex attribute"
            )
        if resolved.multi_valued:
            element_base = len(resolved.attrs)
            return self._scoped(
                resolved,
                base,
                lambda ref, _: AnyElement(ref, self.lower(node.inner, resolved, element_base)),
            )
        # inner paths share the enclosing element scope, if there is one
        return self._scoped(
            resolved, base, lambda _, scope_base: self.lower(node.inner, resolved, scope_base)
        )

    def _scoped(self, resolved: ResolvedPath, base: int, build: _Build) -> QueryPredicate:
        """
        Splits the attribute chain (starting at `base`) at multi-valued complex attributes,
        wrapping the predicate built for the remaining part in `AnyElement`.
        """
        attrs = resolved.attrs
        for i in range(base, len(attrs) - 1):
            if attrs[i].is_complex and attrs[i].multi_valued:
                return AnyElement(
                    self._ref(resolved, base, i + 1), self._scoped(resolved, i + 1, build)
                )
        return build(self._ref(resolved, base, len(attrs)), base)

    def _ref(self, resolved: ResolvedPath, start: int, end: int) -> PropertyRef:
        attrs = resolved.attrs
        extension = None
        if start == 0 and self._schema.is_extension(attrs[0].schema):
            extension = str(attrs[0].schema)
        return PropertyRef(
            steps=tuple(str(attr.name) for attr in attrs[start:end]),
            attr=attrs[end - 1],
            extension=extension,
        )
