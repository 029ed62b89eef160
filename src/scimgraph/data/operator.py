from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from typing_extensions import TypeAlias

from scimgraph.data.constants import AttributeType
from scimgraph.data.identifiers import AttrPath


class ComparisonOperator(str, Enum):
    EQ = "eq"
    NE = "ne"
    CO = "co"
    SW = "sw"
    EW = "ew"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"

    @property
    def is_ordering(self) -> bool:
        return self in _ORDERING_OPERATORS

    @property
    def is_substring(self) -> bool:
        return self in _SUBSTRING_OPERATORS


_ORDERING_OPERATORS = frozenset(
    {ComparisonOperator.GT, ComparisonOperator.GE, ComparisonOperator.LT, ComparisonOperator.LE}
)
_SUBSTRING_OPERATORS = frozenset(
    {ComparisonOperator.CO, ComparisonOperator.SW, ComparisonOperator.EW}
)


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"
    NOT = "not"


SUPPORTED_TYPES: dict[ComparisonOperator, frozenset[AttributeType]] = {
    ComparisonOperator.EQ: frozenset(AttributeType),
    ComparisonOperator.NE: frozenset(AttributeType),
    ComparisonOperator.CO: frozenset({AttributeType.STRING, AttributeType.REFERENCE}),
    ComparisonOperator.SW: frozenset({AttributeType.STRING, AttributeType.REFERENCE}),
    ComparisonOperator.EW: frozenset({AttributeType.STRING, AttributeType.REFERENCE}),
}
for _op in _ORDERING_OPERATORS:
    SUPPORTED_TYPES[_op] = frozenset(
        {
            AttributeType.STRING,
            AttributeType.REFERENCE,
            AttributeType.INTEGER,
            AttributeType.DECIMAL,
            AttributeType.DATETIME,
        }
    )
del _op


@dataclass(frozen=True)
class Comparison:
    """
    Represents `attrPath op value` expression, e.g. `userName eq "bob"`.
    """

    attr_path: AttrPath
    operator: ComparisonOperator
    value: Any

    def __eq__(self, other: Any) -> bool:
        # 1 == 1.0 == True in Python, but not in filter expressions
        if not isinstance(other, Comparison):
            return False
        return (
            self.attr_path == other.attr_path
            and self.operator is other.operator
            and type(self.value) is type(other.value)
            and self.value == other.value
        )

    def __hash__(self):
        return hash((self.attr_path, self.operator, type(self.value), self.value))


@dataclass(frozen=True)
class Presence:
    """
    Represents `attrPath pr` expression.
    """

    attr_path: AttrPath


@dataclass(frozen=True)
class Logical:
    """
    Represents `and`, `or` (two or more children), and `not` (exactly one child) expressions.
    Children are kept in the order they appear in the expression.

    Raises:
        ValueError: If the number of children does not fit the operator.
    """

    operator: LogicalOperator
    children: tuple["FilterNode", ...]

    def __post_init__(self):
        object.__setattr__(self, "operator", LogicalOperator(self.operator))
        object.__setattr__(self, "children", tuple(self.children))
        if self.operator is LogicalOperator.NOT:
            if len(self.children) != 1:
                raise ValueError("'not' requires exactly one child")
        elif len(self.children) < 2:
            raise ValueError(f"{self.operator.value!r} requires at least two children")


@dataclass(frozen=True)
class ValuePathFilter:
    """
    Represents `attrPath[filter]` expression, selecting elements of a complex attribute
    that match the inner filter. Attribute paths of the inner filter are relative to
    `attr_path`.
    """

    attr_path: AttrPath
    inner: "FilterNode"


FilterNode: TypeAlias = Union[Comparison, Presence, Logical, ValuePathFilter]
