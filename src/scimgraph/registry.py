import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional, Protocol, Sequence

import structlog

from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.error import SchemaLoadError, UnknownResourceType

logger = structlog.get_logger(__name__)


class SchemaSource(Protocol):
    """
    Anything that can read resource type definitions, with their schemas and schema
    extensions, from wherever they are stored.
    """

    def fetch_all(self) -> list[ResourceTypeSchema]:
        ...


def _normalize_endpoint(endpoint: str) -> str:
    return "/" + endpoint.strip("/")


@dataclass(frozen=True)
class SchemaSnapshot:
    """
    Complete, internally consistent set of resource type schemas at one point in time.
    Snapshots are never modified; reloading the registry publishes a new one.
    """

    version: int
    by_name: Mapping[str, ResourceTypeSchema]
    by_endpoint: Mapping[str, ResourceTypeSchema]

    @classmethod
    def build(cls, schemas: Sequence[ResourceTypeSchema], version: int) -> "SchemaSnapshot":
        """
        Raises:
            SchemaLoadError: If there are no schemas, or resource type names or endpoints
                are not unique.
        """
        if not schemas:
            raise SchemaLoadError("no resource type definitions found")
        by_name: dict[str, ResourceTypeSchema] = {}
        by_endpoint: dict[str, ResourceTypeSchema] = {}
        for schema in schemas:
            if not isinstance(schema, ResourceTypeSchema):
                raise SchemaLoadError(
                    f"expected resource type schema, got {type(schema).__name__!r}"
                )
            name = schema.name.lower()
            if name in by_name:
                raise SchemaLoadError(f"resource type {schema.name!r} defined more than once")
            endpoint = _normalize_endpoint(schema.endpoint)
            if endpoint in by_endpoint:
                raise SchemaLoadError(
                    f"endpoint {schema.endpoint!r} used by resource types "
                    f"{by_endpoint[endpoint].name!r} and {schema.name!r}"
                )
            by_name[name] = schema
            by_endpoint[endpoint] = schema
        return cls(
            version=version,
            by_name=MappingProxyType(by_name),
            by_endpoint=MappingProxyType(by_endpoint),
        )

    def __iter__(self) -> Iterator[ResourceTypeSchema]:
        return iter(self.by_name.values())

    def __len__(self) -> int:
        return len(self.by_name)

    @property
    def resource_types(self) -> list[ResourceTypeSchema]:
        return list(self.by_name.values())

    def get(self, resource_type: str) -> ResourceTypeSchema:
        """
        Returns the schema of the resource type with the provided name (case-insensitive).

        Raises:
            UnknownResourceType: If there is no such resource type.
        """
        schema = self.by_name.get(resource_type.lower())
        if schema is None:
            raise UnknownResourceType(resource_type)
        return schema

    def get_by_endpoint(self, endpoint: str) -> ResourceTypeSchema:
        """
        Returns the schema of the resource type served at the provided endpoint, e.g.
        `/Users`.

        Raises:
            UnknownResourceType: If there is no such resource type.
        """
        schema = self.by_endpoint.get(_normalize_endpoint(endpoint))
        if schema is None:
            raise UnknownResourceType(endpoint)
        return schema


class SchemaRegistry:
    """
    Holds the published schema snapshot and replaces it on reload.

    Readers never lock. The snapshot is published with a single reference assignment, so a
    reader sees either the previous or the new snapshot, never a mix of both. Callers that
    perform several lookups for one request should capture `snapshot()` once and use it for
    all of them. Loads and reloads are serialized.

    Args:
        source: Source the schemas are loaded from.
    """

    def __init__(self, source: Optional[SchemaSource] = None):
        self._source = source
        self._snapshot: Optional[SchemaSnapshot] = None
        self._version = 0
        self._lock = threading.Lock()

    @property
    def source(self) -> Optional[SchemaSource]:
        return self._source

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def load(self, source: Optional[SchemaSource] = None) -> list[ResourceTypeSchema]:
        """
        Fetches all definitions from the source and publishes them as the new snapshot. If
        `source` is provided, it replaces the registry's source for subsequent reloads.

        Raises:
            SchemaLoadError: If the definitions are malformed or missing. The previous
                snapshot, if any, stays in effect.
        """
        with self._lock:
            source = source or self._source
            if source is None:
                raise SchemaLoadError("no schema source configured")
            try:
                snapshot = SchemaSnapshot.build(
                    self._fetch(source), version=self._version + 1
                )
            except SchemaLoadError as e:
                logger.error(
                    "schema_load_failed",
                    error=e.detail,
                    current_version=self._version,
                )
                raise
            self._source = source
            self._version = snapshot.version
            self._snapshot = snapshot
        logger.info(
            "schemas_loaded",
            version=snapshot.version,
            resource_types=[schema.name for schema in snapshot],
        )
        return snapshot.resource_types

    def reload(self) -> list[ResourceTypeSchema]:
        """
        Re-fetches the definitions from the registry's source and atomically replaces the
        snapshot. All-or-nothing: on failure the previous snapshot stays in effect.

        Raises:
            SchemaLoadError: If the definitions are malformed or missing.
        """
        return self.load()

    @staticmethod
    def _fetch(source: SchemaSource) -> list[ResourceTypeSchema]:
        try:
            return list(source.fetch_all())
        except SchemaLoadError:
            raise
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise SchemaLoadError(f"can not fetch schema definitions: {e}") from e

    def snapshot(self) -> SchemaSnapshot:
        """
        Returns the currently published snapshot.

        Raises:
            SchemaLoadError: If schemas have not been loaded yet.
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise SchemaLoadError("schemas have not been loaded")
        return snapshot

    def get(self, resource_type: str) -> ResourceTypeSchema:
        return self.snapshot().get(resource_type)

    def get_by_endpoint(self, endpoint: str) -> ResourceTypeSchema:
        return self.snapshot().get_by_endpoint(endpoint)
