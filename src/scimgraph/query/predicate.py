import operator
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Union

from typing_extensions import TypeAlias

from scimgraph.data.attrs import AttributeDefinition
from scimgraph.data.constants import AttributeType
from scimgraph.data.operator import ComparisonOperator, LogicalOperator
from scimgraph.data.scim_data import get_path_value, get_value, is_empty

_OPERATORS: dict[ComparisonOperator, Callable[[Any, Any], bool]] = {
    ComparisonOperator.EQ: operator.eq,
    ComparisonOperator.NE: operator.ne,
    ComparisonOperator.CO: operator.contains,
    ComparisonOperator.SW: lambda attr_value, op_value: attr_value.startswith(op_value),
    ComparisonOperator.EW: lambda attr_value, op_value: attr_value.endswith(op_value),
    ComparisonOperator.GT: operator.gt,
    ComparisonOperator.GE: operator.ge,
    ComparisonOperator.LT: operator.lt,
    ComparisonOperator.LE: operator.le,
}


@dataclass(frozen=True)
class PropertyRef:
    """
    Storage-addressable reference to a value: property keys to follow from the record (or
    from the element of an enclosing multi-valued complex attribute), together with the
    definition of the attribute the value belongs to.

    Args:
        steps: Property keys, e.g. `("name", "givenName")`.
        attr: Definition of the referenced attribute.
        extension: URI of the schema extension whose container holds the top-level attribute,
            if any.
    """

    steps: tuple[str, ...]
    attr: AttributeDefinition
    extension: Optional[str] = None

    @property
    def key(self) -> str:
        """Flat property key, e.g. `name.givenName`."""
        key = ".".join(self.steps)
        if self.extension:
            key = f"{self.extension}:{key}"
        return key

    @property
    def type(self) -> AttributeType:
        return self.attr.type

    @property
    def multi_valued(self) -> bool:
        return self.attr.multi_valued

    @property
    def case_exact(self) -> bool:
        return self.attr.case_exact

    def get(self, record: Any) -> Any:
        """
        Returns the referenced value from the record, or `Missing`.
        """
        if self.extension:
            record = get_value(record, self.extension)
        return get_path_value(record, self.steps)

    def values(self, record: Any) -> list[Any]:
        """
        Returns the referenced values as a list, skipping unassigned ones. A single-valued
        attribute gives at most one item.
        """
        value = self.get(record)
        items = value if isinstance(value, list) else [value]
        return [item for item in items if not is_empty(item)]


@dataclass(frozen=True)
class Compare:
    """
    Compares the referenced value with the literal, already coerced to the attribute type.
    For multi-valued attributes it matches if any of the values matches. `None` literal is
    only used with `eq` (value unassigned) and `ne` (value assigned).
    """

    ref: PropertyRef
    operator: ComparisonOperator
    value: Any

    def match(self, record: Any) -> bool:
        values = self.ref.values(record)
        if self.value is None:
            if self.operator is ComparisonOperator.EQ:
                return not values
            return bool(values)
        try:
            op_value = self.ref.attr.normalize(self.value)
        except (ValueError, TypeError, UnicodeEncodeError):
            return False
        return any(self._match_one(value, op_value) for value in values)

    def _match_one(self, value: Any, op_value: Any) -> bool:
        if not self.ref.attr.is_valid_value(value):
            return False
        try:
            return _OPERATORS[self.operator](self.ref.attr.normalize(value), op_value)
        except (ValueError, TypeError, UnicodeEncodeError):
            return False

    def to_dict(self) -> dict[str, Any]:
        value = self.value
        if isinstance(value, datetime):
            value = value.isoformat()
        return {"op": self.operator.value, "ref": self.ref.key, "value": value}


@dataclass(frozen=True)
class Exists:
    """
    Matches if the referenced value is assigned (SCIM `pr` operator).
    """

    ref: PropertyRef

    def match(self, record: Any) -> bool:
        return bool(self.ref.values(record))

    def to_dict(self) -> dict[str, Any]:
        return {"op": "exists", "ref": self.ref.key}


@dataclass(frozen=True)
class Logical:
    operator: LogicalOperator
    children: tuple["QueryPredicate", ...]

    def match(self, record: Any) -> bool:
        if self.operator is LogicalOperator.AND:
            return all(child.match(record) for child in self.children)
        if self.operator is LogicalOperator.OR:
            return any(child.match(record) for child in self.children)
        return not self.children[0].match(record)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.operator.value,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class AnyElement:
    """
    Existential predicate over a multi-valued complex attribute: matches if at least one
    element satisfies the whole inner predicate. References of the inner predicate are
    relative to the element.
    """

    ref: PropertyRef
    inner: "QueryPredicate"

    def match(self, record: Any) -> bool:
        return any(
            self.inner.match(item) for item in self.ref.values(record) if isinstance(item, Mapping)
        )

    def to_dict(self) -> dict[str, Any]:
        return {"op": "any", "ref": self.ref.key, "predicate": self.inner.to_dict()}


QueryPredicate: TypeAlias = Union[Compare, Exists, Logical, AnyElement]
