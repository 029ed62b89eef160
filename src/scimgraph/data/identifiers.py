import re
from typing import Any, Optional, cast

_ATTR_NAME = re.compile(r"([a-zA-Z][\w$-]*|\$ref)")
_URI_PREFIX = re.compile(r"(?:[\w.-]+:)*")
_ATTR_PATH = re.compile(
    rf"({_URI_PREFIX.pattern})({_ATTR_NAME.pattern}(?:\.{_ATTR_NAME.pattern})*)"
)


class AttrName(str):
    """
    Represents attribute name. Must conform attribute name notation, as
    specified in RFC-7643.

    Attribute names are case-insensitive.

    Raises:
        ValueError: If the provided value is not valid attribute name.
    """

    def __repr__(self):
        return f"AttrName({self})"

    def __new__(cls, value: str) -> "AttrName":
        if not isinstance(value, AttrName) and not _ATTR_NAME.fullmatch(value):
            raise ValueError(f"{value!r} is not valid attr name")
        return cast(AttrName, str.__new__(cls, value))

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, str):
            other = other.lower()
        return self.lower() == other

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self.lower())


class SchemaUri(str):
    """
    Represents schema URI.

    Schema URIs are case-insensitive.

    Raises:
        ValueError: If the provided value is not valid schema URI.
    """

    def __new__(cls, value: str) -> "SchemaUri":
        if not isinstance(value, SchemaUri) and (
            not value or not _URI_PREFIX.fullmatch(value + ":")
        ):
            raise ValueError(f"{value!r} is not a valid schema URI")
        return cast(SchemaUri, str.__new__(cls, value))

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, str):
            other = other.lower()
        return self.lower() == other

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self.lower())


class AttrPath:
    """
    Attribute path, as used in filter expressions: one or more dot-separated segments,
    optionally prefixed with the URI of the schema the first segment belongs to.

    Equality is case-insensitive, for both the segments and the schema URI.
    """

    def __init__(self, *segments: str, schema: Optional[str] = None):
        """
        Args:
            *segments: Attribute name, followed by sub-attribute names.
            schema: Optional schema URI the path is bound to.

        Raises:
            ValueError: If no segments are provided, or any of them is not valid attribute name.
        """
        if not segments:
            raise ValueError("attribute path requires at least one segment")
        self._segments = tuple(AttrName(segment) for segment in segments)
        self._schema = SchemaUri(schema) if schema else None
        str_ = ".".join(self._segments)
        if self._schema:
            str_ = f"{self._schema}:{str_}"
        self._str = str_

    def __str__(self) -> str:
        return self._str

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._str})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, AttrPath):
            return False
        return self._segments == other._segments and self._schema == other._schema

    def __hash__(self):
        return hash((self._segments, self._schema))

    def __len__(self) -> int:
        return len(self._segments)

    @property
    def segments(self) -> tuple[AttrName, ...]:
        """Attribute name, followed by sub-attribute names."""
        return self._segments

    @property
    def schema(self) -> Optional[SchemaUri]:
        """Schema URI the path is bound to, if specified."""
        return self._schema

    @property
    def attr(self) -> AttrName:
        """The top-level attribute name."""
        return self._segments[0]

    def child(self, *segments: str) -> "AttrPath":
        """
        Returns new path, extended with the provided segments.
        """
        return AttrPath(*self._segments, *segments, schema=self._schema)

    @classmethod
    def validate(cls, value: str) -> bool:
        """
        Checks whether the provided `value` is valid attribute path representation.
        """
        return _ATTR_PATH.fullmatch(value) is not None

    @classmethod
    def deserialize(cls, value: str) -> "AttrPath":
        """
        Deserializes the provided `value` to `AttrPath`.

        Raises:
            ValueError: If the provided `value` is not valid attribute path.

        Examples:
            >>> AttrPath.deserialize("name.givenName")
            AttrPath(name.givenName)
            >>> AttrPath.deserialize(
            >>>     "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User:manager.value"
            >>> ).schema
            'urn:ietf:params:scim:schemas:extension:enterprise:2.0:User'
        """
        match = _ATTR_PATH.fullmatch(value)
        if match is None:
            raise ValueError(f"{value!r} is not valid attribute path")
        schema, path = match.group(1), match.group(2)
        return cls(*path.split("."), schema=schema[:-1] if schema else None)
