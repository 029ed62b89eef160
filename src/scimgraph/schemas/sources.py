import json
import os
from collections.abc import Mapping
from typing import Any, Sequence, Union

from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.error import SchemaLoadError
from scimgraph.schemas.group import GROUP, GROUP_RESOURCE_TYPE
from scimgraph.schemas.loader import build_resource_types
from scimgraph.schemas.user import ENTERPRISE_USER, USER, USER_RESOURCE_TYPE


class DocumentSchemaSource:
    """
    Schema source serving in-memory schema and resource type documents.
    """

    def __init__(
        self,
        schemas: Sequence[Mapping[str, Any]],
        resource_types: Sequence[Mapping[str, Any]],
    ):
        self._schemas = list(schemas)
        self._resource_types = list(resource_types)

    def fetch_all(self) -> list[ResourceTypeSchema]:
        return build_resource_types(self._schemas, self._resource_types)


class JsonFileSchemaSource:
    """
    Schema source reading a JSON file with two top-level keys: `schemas`, holding schema
    documents, and `resourceTypes`, holding resource type documents. The file is read on
    every fetch, so reloading the registry picks up changes made to it.
    """

    def __init__(self, path: Union[str, os.PathLike]):
        self._path = path

    @property
    def path(self) -> Union[str, os.PathLike]:
        return self._path

    def fetch_all(self) -> list[ResourceTypeSchema]:
        try:
            with open(self._path, encoding="utf-8") as file:
                content = json.load(file)
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaLoadError(f"can not read schema file {str(self._path)!r}: {e}") from e
        if not isinstance(content, dict):
            raise SchemaLoadError(f"schema file {str(self._path)!r} must contain JSON object")
        schemas = content.get("schemas", [])
        resource_types = content.get("resourceTypes", [])
        if not isinstance(schemas, list) or not isinstance(resource_types, list):
            raise SchemaLoadError("'schemas' and 'resourceTypes' must be lists")
        return build_resource_types(schemas, resource_types)


def default_schema_source() -> DocumentSchemaSource:
    """
    Returns source of the built-in definitions: `User` resource type, extended with
    `EnterpriseUser`, and `Group` resource type.
    """
    return DocumentSchemaSource(
        schemas=[USER.to_dict(), ENTERPRISE_USER.to_dict(), GROUP.to_dict()],
        resource_types=[USER_RESOURCE_TYPE, GROUP_RESOURCE_TYPE],
    )
