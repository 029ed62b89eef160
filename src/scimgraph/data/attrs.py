import base64
import binascii
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

import precis_i18n
import precis_i18n.profile

from scimgraph.data.constants import AttributeType
from scimgraph.data.identifiers import AttrName, SchemaUri
from scimgraph.data.scim_data import get_value, is_empty

_OPAQUE_STRING: precis_i18n.profile.Profile = precis_i18n.get_profile("OpaqueString")
_INTEGER_LITERAL = re.compile(r"-?(?:0|[1-9]\d*)")
_DECIMAL_LITERAL = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")


class AttributeMutability(str, Enum):
    READ_WRITE = "readWrite"
    READ_ONLY = "readOnly"
    WRITE_ONLY = "writeOnly"
    IMMUTABLE = "immutable"


class AttributeReturn(str, Enum):
    DEFAULT = "default"
    ALWAYS = "always"
    NEVER = "never"
    REQUEST = "request"


class AttributeUniqueness(str, Enum):
    NONE = "none"
    SERVER = "server"
    GLOBAL = "global"


_PYTHON_TYPES: dict[AttributeType, tuple[type, ...]] = {
    AttributeType.STRING: (str,),
    AttributeType.REFERENCE: (str,),
    AttributeType.BINARY: (str,),
    AttributeType.BOOLEAN: (bool,),
    AttributeType.INTEGER: (int,),
    AttributeType.DECIMAL: (int, float),
    AttributeType.DATETIME: (str, datetime),
    AttributeType.COMPLEX: (Mapping,),
}


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """
    Parses `xsd:dateTime` value. Naive values are assumed to be in UTC.

    Raises:
        ValueError: If the value is not valid `xsd:dateTime`.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or "T" not in value:
            raise ValueError(f"{value!r} is not valid dateTime")
        if value.endswith(("Z", "z")):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_string(value: str, case_exact: bool) -> str:
    """
    Normalizes the string for comparison: PRECIS `OpaqueString` enforcement, followed by
    case folding if the attribute is not case-exact.

    Raises:
        UnicodeEncodeError: If the value contains characters disallowed by the profile.
    """
    value = _OPAQUE_STRING.enforce(value)
    if not case_exact:
        value = value.lower()
    return value


@dataclass(frozen=True)
class AttributeDefinition:
    """
    Data-driven definition of a single attribute, as described in RFC-7643, section 7.

    Instances are immutable, so they can be safely shared between schema snapshots and
    requests.

    Args:
        name: Name of the attribute. Must be valid attribute name, according to RFC-7643.
        type: Data type of the attribute.
        multi_valued: Specifies if attribute is multivalued.
        required: Specifies if attribute is required.
        mutability: Specifies attribute's mutability.
        uniqueness: Specifies attribute's uniqueness.
        returned: Specifies attribute's `returned` characteristic.
        case_exact: Specifies if string values are compared case-sensitively.
        description: Description of the attribute.
        canonical_values: Canonical values of the attribute.
        reference_types: Resource types a reference attribute may refer to.
        sub_attributes: Sub-attributes of a complex attribute.
        schema: URI of the schema the attribute belongs to, assigned when the attribute is
            flattened into a resource type.

    Raises:
        ValueError: If sub-attributes are specified for non-complex attribute, or sub-attribute
            names are not unique (case-insensitive).
    """

    name: AttrName
    type: AttributeType
    multi_valued: bool = False
    required: bool = False
    mutability: AttributeMutability = AttributeMutability.READ_WRITE
    uniqueness: AttributeUniqueness = AttributeUniqueness.NONE
    returned: AttributeReturn = AttributeReturn.DEFAULT
    case_exact: bool = False
    description: str = field(default="", compare=False)
    canonical_values: tuple = ()
    reference_types: tuple[str, ...] = ()
    sub_attributes: tuple["AttributeDefinition", ...] = ()
    schema: Optional[SchemaUri] = None

    def __post_init__(self):
        object.__setattr__(self, "name", AttrName(self.name))
        object.__setattr__(self, "type", AttributeType(self.type))
        object.__setattr__(self, "mutability", AttributeMutability(self.mutability))
        object.__setattr__(self, "uniqueness", AttributeUniqueness(self.uniqueness))
        object.__setattr__(self, "returned", AttributeReturn(self.returned))
        object.__setattr__(self, "canonical_values", tuple(self.canonical_values))
        object.__setattr__(self, "reference_types", tuple(self.reference_types))
        object.__setattr__(self, "sub_attributes", tuple(self.sub_attributes))
        if self.schema is not None:
            object.__setattr__(self, "schema", SchemaUri(self.schema))

        if self.sub_attributes and self.type is not AttributeType.COMPLEX:
            raise ValueError(f"non-complex attribute '{self.name}' can not have sub-attributes")
        seen: set[AttrName] = set()
        for sub_attr in self.sub_attributes:
            if sub_attr.name in seen:
                raise ValueError(
                    f"sub-attribute '{sub_attr.name}' of '{self.name}' defined more than once"
                )
            seen.add(sub_attr.name)

    def __repr__(self) -> str:
        return f"AttributeDefinition({self.name}: {self.type.value})"

    @property
    def is_complex(self) -> bool:
        return self.type is AttributeType.COMPLEX

    def get_sub_attr(self, name: str) -> Optional["AttributeDefinition"]:
        """
        Returns sub-attribute with the provided `name` (case-insensitive), or `None` if there
        is no such sub-attribute.
        """
        for sub_attr in self.sub_attributes:
            if sub_attr.name == name:
                return sub_attr
        return None

    def bind(self, schema: str) -> "AttributeDefinition":
        """
        Returns a copy of the attribute (and its sub-attributes) bound to the provided schema.
        """
        return replace(
            self,
            schema=SchemaUri(schema),
            sub_attributes=tuple(sub_attr.bind(schema) for sub_attr in self.sub_attributes),
        )

    def is_valid_value(self, value: Any) -> bool:
        """
        Checks whether the single (not multi-valued) value matches the attribute type.
        Complex values are checked shallowly.
        """
        if isinstance(value, bool) and self.type is not AttributeType.BOOLEAN:
            return False
        if not isinstance(value, _PYTHON_TYPES[self.type]):
            return False
        if self.type is AttributeType.DATETIME:
            try:
                parse_datetime(value)
            except ValueError:
                return False
        elif self.type is AttributeType.BINARY:
            try:
                base64.b64decode(value, validate=True)
            except binascii.Error:
                return False
        return True

    def coerce(self, value: Any) -> Any:
        """
        Coerces a filter literal to the attribute's type. `None` (`null` literal) is returned
        as is.

        Raises:
            ValueError: If the literal can not be coerced.
        """
        if value is None:
            return None
        type_ = self.type
        if type_ in (AttributeType.STRING, AttributeType.REFERENCE):
            if not isinstance(value, str):
                raise ValueError(f"expected string, got {value!r}")
            return value
        if type_ is AttributeType.BINARY:
            if not isinstance(value, str) or not self.is_valid_value(value):
                raise ValueError(f"expected base64-encoded string, got {value!r}")
            return value
        if type_ is AttributeType.BOOLEAN:
            if isinstance(value, bool):
                return value
            if value in ("true", "false"):
                return value == "true"
            raise ValueError(f"expected boolean, got {value!r}")
        if type_ is AttributeType.INTEGER:
            if isinstance(value, bool):
                raise ValueError(f"expected integer, got {value!r}")
            if isinstance(value, int):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
            if isinstance(value, str) and _INTEGER_LITERAL.fullmatch(value):
                return int(value)
            raise ValueError(f"expected integer, got {value!r}")
        if type_ is AttributeType.DECIMAL:
            if isinstance(value, bool):
                raise ValueError(f"expected decimal, got {value!r}")
            if not isinstance(value, (int, float)) and not (
                isinstance(value, str) and _DECIMAL_LITERAL.fullmatch(value)
            ):
                raise ValueError(f"expected decimal, got {value!r}")
            try:
                coerced = float(value)
            except OverflowError:
                coerced = math.inf
            if not math.isfinite(coerced):
                raise ValueError(f"decimal {value!r} is out of range")
            return coerced
        if type_ is AttributeType.DATETIME:
            return parse_datetime(value)
        raise ValueError(f"literal can not be compared with {type_.value!r} attribute")

    def normalize(self, value: Any) -> Any:
        """
        Brings a stored or provided value to the form used in comparisons.
        """
        if value is None:
            return None
        if self.type is AttributeType.DATETIME:
            return parse_datetime(value)
        if self.type is AttributeType.DECIMAL and isinstance(value, int) and not isinstance(
            value, bool
        ):
            return float(value)
        if isinstance(value, str) and self.type in (
            AttributeType.STRING,
            AttributeType.REFERENCE,
        ):
            return normalize_string(value, self.case_exact)
        return value

    def values_equal(self, value: Any, other: Any) -> bool:
        """
        Compares two values of the attribute, respecting the attribute type and `caseExact`
        characteristic. Multi-valued values are compared as multisets.
        """
        if self.multi_valued and isinstance(value, list) and isinstance(other, list):
            if len(value) != len(other):
                return False
            remaining = list(other)
            for item in value:
                for i, candidate in enumerate(remaining):
                    if self._item_equal(item, candidate):
                        remaining.pop(i)
                        break
                else:
                    return False
            return True
        return self._item_equal(value, other)

    def _item_equal(self, value: Any, other: Any) -> bool:
        if self.is_complex and isinstance(value, Mapping) and isinstance(other, Mapping):
            for sub_attr in self.sub_attributes:
                sub_value = get_value(value, sub_attr.name)
                other_sub_value = get_value(other, sub_attr.name)
                if is_empty(sub_value) and is_empty(other_sub_value):
                    continue
                if not sub_attr.values_equal(sub_value, other_sub_value):
                    return False
            return True
        try:
            return self.normalize(value) == self.normalize(other)
        except (ValueError, TypeError, UnicodeEncodeError):
            return value == other

    def to_dict(self) -> dict:
        """
        Converts the attribute to a dictionary. The contents meet the requirements
        of the schema definition, as per RFC-7643, section 7.
        """
        output: dict[str, Any] = {
            "name": str(self.name),
            "type": self.type.value,
            "multiValued": self.multi_valued,
            "description": self.description,
            "required": self.required,
            "mutability": self.mutability.value,
            "returned": self.returned.value,
        }
        if self.type in (AttributeType.STRING, AttributeType.REFERENCE, AttributeType.BINARY):
            output["caseExact"] = self.case_exact
        if self.type not in (AttributeType.COMPLEX, AttributeType.BOOLEAN):
            output["uniqueness"] = self.uniqueness.value
        if self.canonical_values:
            output["canonicalValues"] = list(self.canonical_values)
        if self.reference_types:
            output["referenceTypes"] = list(self.reference_types)
        if self.sub_attributes:
            output["subAttributes"] = [sub_attr.to_dict() for sub_attr in self.sub_attributes]
        return output
