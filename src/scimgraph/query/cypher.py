import re
from dataclasses import dataclass, field
from typing import Any, Optional

from scimgraph.data.attrs import AttributeDefinition
from scimgraph.data.constants import AttributeType
from scimgraph.data.operator import ComparisonOperator, LogicalOperator
from scimgraph.query.predicate import (
    AnyElement,
    Compare,
    Exists,
    Logical,
    PropertyRef,
    QueryPredicate,
)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_SYMBOLS = {
    ComparisonOperator.EQ: "=",
    ComparisonOperator.NE: "<>",
    ComparisonOperator.CO: "CONTAINS",
    ComparisonOperator.SW: "STARTS WITH",
    ComparisonOperator.EW: "ENDS WITH",
    ComparisonOperator.GT: ">",
    ComparisonOperator.GE: ">=",
    ComparisonOperator.LT: "<",
    ComparisonOperator.LE: "<=",
}

_STRING_TYPES = (AttributeType.STRING, AttributeType.REFERENCE, AttributeType.BINARY)


@dataclass(frozen=True)
class CypherClause:
    """
    Rendered `WHERE` condition, with parameters to pass along with the query.
    """

    where: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CypherQuery:
    query: str
    params: dict[str, Any] = field(default_factory=dict)


def quote(name: str) -> str:
    """
    Quotes the name with backticks, unless it is a plain identifier.
    """
    if _IDENTIFIER.fullmatch(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def to_cypher(predicate: QueryPredicate, variable: str = "n") -> CypherClause:
    """
    Renders the predicate as Cypher `WHERE` condition over the resource node bound to
    `variable`.

    Resources are expected to be stored as nodes whose properties hold simple attribute
    values, with single-valued complex attributes flattened to dotted keys
    (`name.givenName`) and extension attributes prefixed with the extension URI. Elements of
    multi-valued complex attributes are separate nodes, related with the resource by the
    relationship named after the attribute.

    The output is deterministic: parameters are named `p0`, `p1`, ... and element variables
    `e0`, `e1`, ..., in the order they appear in the predicate.
    """
    renderer = _Renderer()
    where = renderer.render(predicate, variable)
    return CypherClause(where=where, params=renderer.params)


def match_query(
    predicate: Optional[QueryPredicate], label: str, variable: str = "n"
) -> CypherQuery:
    """
    Renders the complete query returning resource nodes with the provided `label`, that
    match the predicate. No predicate means all resources are returned.
    """
    query = f"MATCH ({variable}:{quote(label)})"
    params: dict[str, Any] = {}
    if predicate is not None:
        clause = to_cypher(predicate, variable)
        query += f" WHERE {clause.where}"
        params = clause.params
    return CypherQuery(query=f"{query} RETURN {variable}", params=params)


def _is_case_insensitive(attr: AttributeDefinition) -> bool:
    return attr.type in (AttributeType.STRING, AttributeType.REFERENCE) and not attr.case_exact


class _Renderer:
    def __init__(self):
        self.params: dict[str, Any] = {}
        self._elements = 0

    def _param(self, value: Any) -> str:
        name = f"p{len(self.params)}"
        self.params[name] = value
        return f"${name}"

    def render(self, predicate: QueryPredicate, variable: str) -> str:
        if isinstance(predicate, Compare):
            return self._render_compare(predicate, variable)
        if isinstance(predicate, Exists):
            return self._render_exists(predicate.ref, variable)
        if isinstance(predicate, Logical):
            return self._render_logical(predicate, variable)
        if isinstance(predicate, AnyElement):
            element = f"e{self._elements}"
            self._elements += 1
            inner = self.render(predicate.inner, element)
            return (
                f"EXISTS {{ MATCH ({variable})-[:{quote(predicate.ref.key)}]->({element}) "
                f"WHERE {inner} }}"
            )
        raise TypeError(f"unsupported predicate type '{type(predicate).__name__}'")

    def _render_compare(self, predicate: Compare, variable: str) -> str:
        if predicate.value is None:
            return self._render_assigned(
                predicate.ref, variable, assigned=predicate.operator is not ComparisonOperator.EQ
            )

        prop = f"{variable}.{quote(predicate.ref.key)}"
        value = predicate.value
        case_insensitive = _is_case_insensitive(predicate.ref.attr)
        if case_insensitive:
            value = value.lower()
        param = self._param(value)
        symbol = _SYMBOLS[predicate.operator]

        if predicate.ref.multi_valued:
            item = "toLower(v)" if case_insensitive else "v"
            return f"ANY(v IN {prop} WHERE {item} {symbol} {param})"
        if case_insensitive:
            prop = f"toLower({prop})"
        return f"{prop} {symbol} {param}"

    def _render_exists(self, ref: PropertyRef, variable: str) -> str:
        if ref.attr.is_complex and ref.multi_valued:
            return f"EXISTS {{ MATCH ({variable})-[:{quote(ref.key)}]->() }}"
        if ref.attr.is_complex:
            conditions = [
                self._render_exists(
                    PropertyRef(
                        steps=ref.steps + (str(sub_attr.name),),
                        attr=sub_attr,
                        extension=ref.extension,
                    ),
                    variable,
                )
                for sub_attr in ref.attr.sub_attributes
            ]
            if not conditions:
                return "false"
            return "(" + " OR ".join(conditions) + ")"
        return self._render_assigned(ref, variable, assigned=True)

    def _render_assigned(self, ref: PropertyRef, variable: str, assigned: bool) -> str:
        # empty strings and lists are unassigned, the same as missing properties
        prop = f"{variable}.{quote(ref.key)}"
        if ref.multi_valued:
            quantifier = "ANY" if assigned else "NONE"
            return f"{quantifier}(v IN coalesce({prop}, []) WHERE v <> '')"
        if ref.attr.type in _STRING_TYPES:
            symbol = "<>" if assigned else "="
            return f"coalesce({prop}, '') {symbol} ''"
        return f"{prop} IS NOT NULL" if assigned else f"{prop} IS NULL"

    def _render_logical(self, predicate: Logical, variable: str) -> str:
        if predicate.operator is LogicalOperator.NOT:
            # missing values make comparisons null; 'not' of a non-match is a match
            return f"NOT coalesce({self.render(predicate.children[0], variable)}, false)"
        parts = []
        for child in predicate.children:
            rendered = self.render(child, variable)
            if isinstance(child, Logical) and child.operator is not LogicalOperator.NOT:
                rendered = f"({rendered})"
            parts.append(rendered)
        return f" {predicate.operator.value.upper()} ".join(parts)
