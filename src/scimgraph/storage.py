import copy
import threading
import uuid
from collections.abc import Iterator, Mapping
from typing import Any, Optional, Protocol

import structlog

from scimgraph.data.attrs import AttributeDefinition, AttributeUniqueness
from scimgraph.data.identifiers import AttrPath
from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.data.scim_data import get_value, is_empty
from scimgraph.error import UniquenessConflictError
from scimgraph.query.predicate import QueryPredicate
from scimgraph.registry import SchemaRegistry

logger = structlog.get_logger(__name__)


class Storage(Protocol):
    """
    Storage collaborator, executing lowered filters and answering uniqueness checks.
    """

    def execute(
        self, predicate: Optional[QueryPredicate], resource_type: str
    ) -> Iterator[dict[str, Any]]:
        """
        Returns resource records of the provided resource type, matching the predicate
        (all records, if there is no predicate). Records are produced lazily, so the caller
        can paginate.
        """

    def exists_with_value(
        self,
        resource_type: Optional[str],
        attribute_name: str,
        value: Any,
        excluding_id: Optional[str] = None,
    ) -> bool:
        """
        Tells whether any record other than `excluding_id` already holds the value of the
        attribute. `resource_type=None` means all resource types are checked.
        """


def attribute_key(schema: ResourceTypeSchema, attr: AttributeDefinition) -> str:
    """
    Returns the name under which the top-level attribute is passed to `exists_with_value`:
    the attribute name, prefixed with the schema URI for extension attributes.
    """
    if schema.is_extension(attr.schema):
        return f"{attr.schema}:{attr.name}"
    return str(attr.name)


class InMemoryStorage:
    """
    Reference `Storage` keeping records in memory, evaluating predicates with
    `QueryPredicate.match`. It enforces uniqueness of `server` and `global` unique
    attributes on every write, which makes it the authoritative uniqueness constraint.

    Args:
        registry: Registry the schemas of stored resource types are taken from.
    """

    def __init__(self, registry: SchemaRegistry):
        self._registry = registry
        self._records: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _bucket(self, schema: ResourceTypeSchema) -> dict[str, dict[str, Any]]:
        return self._records.setdefault(schema.name, {})

    def add(self, resource_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Stores the new record. If it has no `id`, a new one is assigned.

        Raises:
            UnknownResourceType: If the resource type is not registered.
            UniquenessConflictError: If the record violates uniqueness of any attribute.
        """
        schema = self._registry.get(resource_type)
        data = copy.deepcopy(dict(record))
        if is_empty(get_value(data, "id")):
            data["id"] = str(uuid.uuid4())
        record_id = data["id"]
        with self._lock:
            bucket = self._bucket(schema)
            if record_id in bucket:
                raise UniquenessConflictError(schema.name, "id", record_id)
            self._check_uniqueness(schema, data, excluding_id=record_id)
            bucket[record_id] = data
        logger.debug("record_added", resource_type=schema.name, id=record_id)
        return copy.deepcopy(data)

    def replace(self, resource_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Replaces the stored record with the same `id`.

        Raises:
            KeyError: If there is no record with such `id`.
            UniquenessConflictError: If the record violates uniqueness of any attribute.
        """
        schema = self._registry.get(resource_type)
        data = copy.deepcopy(dict(record))
        record_id = get_value(data, "id")
        with self._lock:
            bucket = self._bucket(schema)
            if record_id not in bucket:
                raise KeyError(f"{schema.name} {record_id!r} does not exist")
            self._check_uniqueness(schema, data, excluding_id=record_id)
            bucket[record_id] = data
        logger.debug("record_replaced", resource_type=schema.name, id=record_id)
        return copy.deepcopy(data)

    def get(self, resource_type: str, record_id: str) -> Optional[dict[str, Any]]:
        schema = self._registry.get(resource_type)
        record = self._records.get(schema.name, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def execute(
        self, predicate: Optional[QueryPredicate], resource_type: str
    ) -> Iterator[dict[str, Any]]:
        schema = self._registry.get(resource_type)
        records = list(self._records.get(schema.name, {}).values())
        return (
            copy.deepcopy(record)
            for record in records
            if predicate is None or predicate.match(record)
        )

    def exists_with_value(
        self,
        resource_type: Optional[str],
        attribute_name: str,
        value: Any,
        excluding_id: Optional[str] = None,
    ) -> bool:
        snapshot = self._registry.snapshot()
        schemas = [snapshot.get(resource_type)] if resource_type else list(snapshot)
        path = AttrPath.deserialize(attribute_name)
        for schema in schemas:
            attr = schema.get_attr(path.attr, path.schema)
            if attr is None:
                continue
            for record_id, record in list(self._records.get(schema.name, {}).items()):
                if excluding_id is not None and record_id == excluding_id:
                    continue
                if self._holds_value(attr, schema.get_value(record, attr), value):
                    return True
        return False

    @staticmethod
    def _holds_value(attr: AttributeDefinition, stored: Any, value: Any) -> bool:
        if is_empty(stored):
            return False
        stored_items = stored if isinstance(stored, list) else [stored]
        items = value if isinstance(value, list) else [value]
        return any(
            attr.values_equal(stored_item, item) for stored_item in stored_items for item in items
        )

    def _check_uniqueness(
        self, schema: ResourceTypeSchema, data: Mapping[str, Any], excluding_id: str
    ) -> None:
        for attr in schema:
            if attr.uniqueness is AttributeUniqueness.NONE or attr.is_complex:
                continue
            value = schema.get_value(data, attr)
            if is_empty(value):
                continue
            scope = schema.name if attr.uniqueness is AttributeUniqueness.SERVER else None
            name = attribute_key(schema, attr)
            if self.exists_with_value(scope, name, value, excluding_id=excluding_id):
                raise UniquenessConflictError(scope, name, value)
