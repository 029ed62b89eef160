from collections.abc import Mapping
from typing import Any, Optional


class MissingType:
    _instance = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls, *args, **kwargs)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Missing"


Missing = MissingType()


def find_key(data: Mapping, name: str) -> Optional[str]:
    """
    Returns the key of `data` matching `name` case-insensitively, as SCIM attribute names
    and schema URIs are case-insensitive. If there is no such key, `None` is returned.
    """
    if name in data:
        return name
    lowered = name.lower()
    for key in data:
        if isinstance(key, str) and key.lower() == lowered:
            return key
    return None


def get_value(data: Any, name: str) -> Any:
    """
    Returns the value stored under `name` (case-insensitive), or `Missing` if `data` is not
    a mapping or the key is absent.
    """
    if not isinstance(data, Mapping):
        return Missing
    key = find_key(data, name)
    if key is None:
        return Missing
    return data[key]


def get_path_value(data: Any, steps: tuple[str, ...]) -> Any:
    """
    Follows `steps` through nested mappings. Returns `Missing` as soon as any step
    can not be followed.
    """
    value = data
    for step in steps:
        value = get_value(value, step)
        if value is Missing:
            return Missing
    return value


def is_empty(value: Any) -> bool:
    """
    Tells whether the value is unassigned, as defined in RFC-7643, section 2.5: missing,
    `null`, empty string, empty list, or complex value with no assigned sub-attributes.
    """
    if value is Missing or value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return all(is_empty(item) for item in value)
    if isinstance(value, Mapping):
        return all(is_empty(item) for item in value.values())
    return False
