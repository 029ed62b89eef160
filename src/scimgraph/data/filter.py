import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from scimgraph.data.identifiers import AttrPath
from scimgraph.data.operator import (
    Comparison,
    ComparisonOperator,
    FilterNode,
    Logical,
    LogicalOperator,
    Presence,
    ValuePathFilter,
)
from scimgraph.error import FilterSyntaxError

_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"-?(?:0|[1-9]\d*)(\.\d+)?([eE][+-]?\d+)?")
_WORD = re.compile(r"[a-zA-Z$][\w$:.-]*")

_COMPARISON_OPERATORS = {item.value: item for item in ComparisonOperator}
_KEYWORD_VALUES = {"true": True, "false": False, "null": None}

DEFAULT_MAX_DEPTH = 32
MAX_DEPTH_LIMIT = 100


class _TokenKind(str, Enum):
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    STRING = "string"
    NUMBER = "number"
    WORD = "word"
    EOF = "end of expression"


_PUNCTUATION = {
    "(": _TokenKind.LPAREN,
    ")": _TokenKind.RPAREN,
    "[": _TokenKind.LBRACKET,
    "]": _TokenKind.RBRACKET,
}


@dataclass(frozen=True)
class _Token:
    kind: _TokenKind
    text: str
    position: int
    value: Any = None

    def is_keyword(self, keyword: str) -> bool:
        return self.kind is _TokenKind.WORD and self.text.lower() == keyword

    def describe(self) -> str:
        if self.kind is _TokenKind.EOF:
            return "end of expression"
        return repr(self.text)


def _tokenize(exp: str) -> list[_Token]:
    tokens = []
    position = 0
    length = len(exp)
    while position < length:
        match = _WHITESPACE.match(exp, position)
        if match:
            position = match.end()
            continue
        char = exp[position]
        if char in _PUNCTUATION:
            tokens.append(_Token(_PUNCTUATION[char], char, position))
            position += 1
        elif char == '"':
            token = _read_string(exp, position)
            tokens.append(token)
            position += len(token.text)
        elif char == "-" or char.isdigit():
            match = _NUMBER.match(exp, position)
            if match is None:
                raise FilterSyntaxError(f"unexpected character {char!r}", position, exp)
            text = match.group(0)
            value: Union[int, float]
            try:
                value = float(text) if match.group(1) or match.group(2) else int(text)
            except ValueError:
                value = math.inf
            if isinstance(value, float) and not math.isfinite(value):
                raise FilterSyntaxError(f"number {text!r} is out of range", position, exp)
            tokens.append(_Token(_TokenKind.NUMBER, text, position, value))
            position = match.end()
        else:
            match = _WORD.match(exp, position)
            if match is None:
                raise FilterSyntaxError(f"unexpected character {char!r}", position, exp)
            tokens.append(_Token(_TokenKind.WORD, match.group(0), position))
            position = match.end()
    tokens.append(_Token(_TokenKind.EOF, "", length))
    return tokens


def _read_string(exp: str, start: int) -> _Token:
    position = start + 1
    while position < len(exp):
        char = exp[position]
        if char == "\\":
            position += 2
            continue
        if char == '"':
            break
        position += 1
    else:
        raise FilterSyntaxError("unterminated string literal", start, exp)
    text = exp[start : position + 1]
    try:
        value = json.loads(text, strict=False)
    except json.JSONDecodeError as e:
        raise FilterSyntaxError(f"invalid string literal: {e.msg}", start + e.pos, exp) from e
    return _Token(_TokenKind.STRING, text, start, value)


class _Parser:
    def __init__(self, exp: str, max_depth: Optional[int]):
        if max_depth is None:
            max_depth = DEFAULT_MAX_DEPTH
        elif not 1 <= max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"'max_depth' must be between 1 and {MAX_DEPTH_LIMIT}")
        self._exp = exp
        self._max_depth = max_depth
        self._tokens = _tokenize(exp)
        self._index = 0

    def parse(self) -> FilterNode:
        if self._peek().kind is _TokenKind.EOF:
            raise self._error("empty filter expression", self._peek())
        node = self._parse_or(depth=0)
        token = self._peek()
        if token.kind is _TokenKind.RPAREN:
            raise self._error("unbalanced ')'", token)
        if token.kind is _TokenKind.RBRACKET:
            raise self._error("unbalanced ']'", token)
        if token.kind is not _TokenKind.EOF:
            raise self._error(f"unexpected {token.describe()}", token)
        return node

    def _peek(self) -> _Token:
        return self._tokens[self._index]

    def _advance(self) -> _Token:
        token = self._tokens[self._index]
        if token.kind is not _TokenKind.EOF:
            self._index += 1
        return token

    def _error(self, message: str, token: _Token) -> FilterSyntaxError:
        return FilterSyntaxError(message, token.position, self._exp)

    def _expect(self, kind: _TokenKind) -> _Token:
        token = self._peek()
        if token.kind is not kind:
            raise self._error(f"expected '{kind.value}', got {token.describe()}", token)
        return self._advance()

    def _enter(self, depth: int, token: _Token) -> int:
        depth += 1
        if depth > self._max_depth:
            raise self._error(f"filter nesting exceeds maximum depth of {self._max_depth}", token)
        return depth

    def _parse_or(self, depth: int) -> FilterNode:
        children = [self._parse_and(depth)]
        while self._peek().is_keyword("or"):
            self._advance()
            children.append(self._parse_and(depth))
        if len(children) == 1:
            return children[0]
        return Logical(LogicalOperator.OR, tuple(children))

    def _parse_and(self, depth: int) -> FilterNode:
        children = [self._parse_not(depth)]
        while self._peek().is_keyword("and"):
            self._advance()
            children.append(self._parse_not(depth))
        if len(children) == 1:
            return children[0]
        return Logical(LogicalOperator.AND, tuple(children))

    def _parse_not(self, depth: int) -> FilterNode:
        token = self._peek()
        if not token.is_keyword("not"):
            return self._parse_primary(depth)
        self._advance()
        next_token = self._peek()
        if next_token.kind is _TokenKind.LPAREN:
            return Logical(LogicalOperator.NOT, (self._parse_group(depth),))
        if next_token.kind is _TokenKind.LBRACKET or (
            next_token.kind is _TokenKind.WORD
            and (next_token.is_keyword("pr") or next_token.text.lower() in _COMPARISON_OPERATORS)
        ):
            # 'not' is a valid attribute name
            return self._parse_attr_expression(token, depth)
        raise self._error(f"expected '(' after 'not', got {next_token.describe()}", next_token)

    def _parse_group(self, depth: int) -> FilterNode:
        opening = self._expect(_TokenKind.LPAREN)
        depth = self._enter(depth, opening)
        if self._peek().kind is _TokenKind.RPAREN:
            raise self._error("empty group", self._peek())
        node = self._parse_or(depth)
        self._expect(_TokenKind.RPAREN)
        return node

    def _parse_primary(self, depth: int) -> FilterNode:
        token = self._peek()
        if token.kind is _TokenKind.LPAREN:
            return self._parse_group(depth)
        if token.kind is _TokenKind.WORD:
            self._advance()
            return self._parse_attr_expression(token, depth)
        if token.kind is _TokenKind.EOF:
            raise self._error("unexpected end of expression", token)
        raise self._error(f"expected attribute path or '(', got {token.describe()}", token)

    def _parse_attr_expression(self, path_token: _Token, depth: int) -> FilterNode:
        try:
            attr_path = AttrPath.deserialize(path_token.text)
        except ValueError:
            raise self._error(f"invalid attribute path {path_token.text!r}", path_token)

        token = self._peek()
        if token.kind is _TokenKind.LBRACKET:
            self._advance()
            depth = self._enter(depth, token)
            if self._peek().kind is _TokenKind.RBRACKET:
                raise self._error("empty value path filter", self._peek())
            inner = self._parse_or(depth)
            self._expect(_TokenKind.RBRACKET)
            return ValuePathFilter(attr_path=attr_path, inner=inner)
        if token.is_keyword("pr"):
            self._advance()
            return Presence(attr_path=attr_path)
        if token.kind is _TokenKind.WORD:
            operator = _COMPARISON_OPERATORS.get(token.text.lower())
            if operator is None:
                raise self._error(f"unknown operator {token.text!r}", token)
            self._advance()
            return Comparison(attr_path=attr_path, operator=operator, value=self._parse_value())
        raise self._error(f"expected operator, got {token.describe()}", token)

    def _parse_value(self) -> Any:
        token = self._peek()
        if token.kind in (_TokenKind.STRING, _TokenKind.NUMBER):
            self._advance()
            return token.value
        if token.kind is _TokenKind.WORD and token.text in _KEYWORD_VALUES:
            self._advance()
            return _KEYWORD_VALUES[token.text]
        if token.kind is _TokenKind.EOF:
            raise self._error("missing comparison value", token)
        raise self._error(f"invalid comparison value {token.describe()}", token)


class Filter:
    """
    Parsed SCIM filter expression, as specified in RFC-7644, section 3.4.2.2.

    The filter is a plain, immutable tree of nodes (`Comparison`, `Presence`, `Logical`,
    `ValuePathFilter`). It knows nothing about schemas; attribute paths are resolved and
    literals coerced during query lowering.

    Examples:
        >>> Filter.deserialize('userName eq "bob"').to_dict()
        {'op': 'eq', 'attr': 'userName', 'value': 'bob'}
        >>> Filter.deserialize('emails[type eq "work"] and not (active eq false)').serialize()
        'emails[type eq "work"] and not (active eq false)'
    """

    def __init__(self, root: FilterNode):
        self._root = root

    @property
    def root(self) -> FilterNode:
        return self._root

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Filter):
            return False
        return self._root == other._root

    def __repr__(self) -> str:
        return f"Filter({self.serialize()})"

    def __str__(self) -> str:
        return self.serialize()

    @classmethod
    def deserialize(cls, filter_exp: str, max_depth: Optional[int] = None) -> "Filter":
        """
        Parses the filter expression.

        Args:
            filter_exp: The filter expression.
            max_depth: Maximum allowed nesting of groups, negations, and value path filters.
                Defaults to `DEFAULT_MAX_DEPTH`, and can not exceed `MAX_DEPTH_LIMIT`.

        Raises:
            FilterSyntaxError: If the expression is empty or does not conform the grammar.
            ValueError: If `max_depth` is out of range.
        """
        return cls(_Parser(filter_exp, max_depth).parse())

    @classmethod
    def deserialize_optional(
        cls, filter_exp: Optional[str], max_depth: Optional[int] = None
    ) -> Optional["Filter"]:
        """
        Like `deserialize`, but for call sites where filter is optional: `None`, empty, or
        whitespace-only expression means no filter.
        """
        if filter_exp is None or not filter_exp.strip():
            return None
        return cls.deserialize(filter_exp, max_depth)

    def serialize(self) -> str:
        """
        Renders the filter back to the expression. Parsing the output yields an equal filter.
        """
        return self._serialize(self._root)

    @staticmethod
    def _serialize(node: FilterNode) -> str:
        if isinstance(node, Comparison):
            value = json.dumps(node.value, ensure_ascii=False)
            return f"{node.attr_path} {node.operator.value} {value}"
        if isinstance(node, Presence):
            return f"{node.attr_path} pr"
        if isinstance(node, ValuePathFilter):
            return f"{node.attr_path}[{Filter._serialize(node.inner)}]"
        if isinstance(node, Logical):
            if node.operator is LogicalOperator.NOT:
                return f"not ({Filter._serialize(node.children[0])})"
            parts = []
            for child in node.children:
                serialized = Filter._serialize(child)
                if isinstance(child, Logical) and child.operator is not LogicalOperator.NOT:
                    serialized = f"({serialized})"
                parts.append(serialized)
            return f" {node.operator.value} ".join(parts)
        raise TypeError(f"unsupported filter node type '{type(node).__name__}'")

    def to_dict(self) -> dict:
        """
        Convert the filter to a dictionary.
        """
        return self._to_dict(self._root)

    @staticmethod
    def _to_dict(node: FilterNode) -> dict:
        if isinstance(node, Comparison):
            return {"op": node.operator.value, "attr": str(node.attr_path), "value": node.value}
        if isinstance(node, Presence):
            return {"op": "pr", "attr": str(node.attr_path)}
        if isinstance(node, ValuePathFilter):
            return {
                "op": "complex",
                "attr": str(node.attr_path),
                "sub_op": Filter._to_dict(node.inner),
            }
        if isinstance(node, Logical):
            if node.operator is LogicalOperator.NOT:
                return {"op": "not", "sub_op": Filter._to_dict(node.children[0])}
            return {
                "op": node.operator.value,
                "sub_ops": [Filter._to_dict(child) for child in node.children],
            }
        raise TypeError(f"unsupported filter node type '{type(node).__name__}'")

    @property
    def attr_paths(self) -> list[AttrPath]:
        """
        Attribute paths referenced in the filter, in order of appearance and without
        duplicates. Paths inside value path filters are prefixed with the enclosing path.
        """
        paths: list[AttrPath] = []
        for path in self._collect_attr_paths(self._root):
            if path not in paths:
                paths.append(path)
        return paths

    @staticmethod
    def _collect_attr_paths(node: FilterNode) -> list[AttrPath]:
        if isinstance(node, (Comparison, Presence)):
            return [node.attr_path]
        if isinstance(node, ValuePathFilter):
            return [
                node.attr_path.child(*inner.segments)
                for inner in Filter._collect_attr_paths(node.inner)
            ]
        paths = []
        for child in node.children:
            paths.extend(Filter._collect_attr_paths(child))
        return paths
