from scimgraph.query.cypher import CypherClause, CypherQuery, match_query, to_cypher
from scimgraph.query.lowering import lower
from scimgraph.query.predicate import (
    AnyElement,
    Compare,
    Exists,
    Logical,
    PropertyRef,
    QueryPredicate,
)

__all__ = [
    "AnyElement",
    "Compare",
    "CypherClause",
    "CypherQuery",
    "Exists",
    "Logical",
    "PropertyRef",
    "QueryPredicate",
    "lower",
    "match_query",
    "to_cypher",
]
