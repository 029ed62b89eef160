import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

import structlog

from scimgraph.data.attrs import AttributeDefinition, AttributeMutability, AttributeUniqueness
from scimgraph.data.schemas import ResourceTypeSchema
from scimgraph.data.scim_data import Missing, find_key, get_value, is_empty
from scimgraph.error import ValidationIssue, ValidationIssueKind
from scimgraph.storage import Storage, attribute_key

logger = structlog.get_logger(__name__)


class ValidationOperation(str, Enum):
    CREATE = "create"
    PATCH = "patch"


@dataclass
class ValidationResult:
    """
    Outcome of payload validation: the payload with read-only values dropped, and all
    problems found. No issues means the payload is accepted.
    """

    data: dict[str, Any]
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues


class Validator:
    """
    Schema-driven validator of resource payloads sent to create or patch a resource.

    Rules are applied in fixed order: required, mutability, type, uniqueness. Issues are
    collected, not raised, so all problems can be reported at once. An attribute that
    failed a rule is not checked by the rules that follow.

    A patch payload is a partial resource: attributes that are absent stay untouched, and
    attributes set to `null` (or empty value) are removed.

    Args:
        storage: Storage used for uniqueness checks. Uniqueness is not checked if not
            provided. The check is best-effort; the storage-level uniqueness constraint is
            authoritative.
    """

    def __init__(self, storage: Optional[Storage] = None):
        self._storage = storage

    def validate(
        self,
        payload: Mapping[str, Any],
        schema: ResourceTypeSchema,
        operation: Union[ValidationOperation, str],
        existing: Optional[Mapping[str, Any]] = None,
    ) -> list[ValidationIssue]:
        """
        Validates the payload and returns the issues found.
        """
        return self.process(payload, schema, operation, existing).issues

    def process(
        self,
        payload: Mapping[str, Any],
        schema: ResourceTypeSchema,
        operation: Union[ValidationOperation, str],
        existing: Optional[Mapping[str, Any]] = None,
    ) -> ValidationResult:
        """
        Validates the payload, and returns its copy without read-only values, along with
        the issues found.

        Args:
            payload: The resource payload.
            schema: Schema of the resource type.
            operation: `create` or `patch`.
            existing: The current state of the resource. Required for `patch`.

        Raises:
            ValueError: If `existing` is not provided for `patch`.
        """
        operation = ValidationOperation(operation)
        if operation is ValidationOperation.PATCH and existing is None:
            raise ValueError("'existing' resource must be provided for 'patch' validation")

        data = copy.deepcopy(dict(payload))
        issues: list[ValidationIssue] = []
        failed: set[str] = set()

        for check in (
            self._check_required,
            self._check_mutability,
            self._check_type,
            self._check_uniqueness,
        ):
            for attr in schema:
                if attribute_key(schema, attr) in failed:
                    continue
                attr_issues = check(data, schema, attr, operation, existing)
                if attr_issues:
                    failed.add(attribute_key(schema, attr))
                    issues.extend(attr_issues)
        return ValidationResult(data=data, issues=issues)

    @staticmethod
    def _check_required(
        data: dict[str, Any],
        schema: ResourceTypeSchema,
        attr: AttributeDefinition,
        operation: ValidationOperation,
        existing: Optional[Mapping[str, Any]],
    ) -> list[ValidationIssue]:
        if attr.mutability is AttributeMutability.READ_ONLY:
            return []
        path = attribute_key(schema, attr)
        value = schema.get_value(data, attr)
        if attr.required:
            if operation is ValidationOperation.CREATE and is_empty(value):
                return [_issue(path, ValidationIssueKind.REQUIRED, "required attribute is missing")]
            if operation is ValidationOperation.PATCH and value is not Missing and is_empty(value):
                return [
                    _issue(
                        path, ValidationIssueKind.REQUIRED, "required attribute can not be removed"
                    )
                ]
        if not attr.is_complex or is_empty(value):
            return []

        issues = []
        for item_path, item in _items(path, attr, value):
            if not isinstance(item, Mapping):
                continue
            for sub_attr in attr.sub_attributes:
                if (
                    sub_attr.required
                    and sub_attr.mutability is not AttributeMutability.READ_ONLY
                    and is_empty(get_value(item, sub_attr.name))
                ):
                    issues.append(
                        _issue(
                            f"{item_path}.{sub_attr.name}",
                            ValidationIssueKind.REQUIRED,
                            "required sub-attribute is missing",
                        )
                    )
        return issues

    @staticmethod
    def _check_mutability(
        data: dict[str, Any],
        schema: ResourceTypeSchema,
        attr: AttributeDefinition,
        operation: ValidationOperation,
        existing: Optional[Mapping[str, Any]],
    ) -> list[ValidationIssue]:
        if attr.mutability is AttributeMutability.READ_ONLY:
            schema.pop_value(data, attr)
            return []
        value = schema.get_value(data, attr)
        if attr.is_complex and not is_empty(value):
            _drop_read_only_sub_attrs(attr, value)

        if (
            attr.mutability is not AttributeMutability.IMMUTABLE
            or operation is not ValidationOperation.PATCH
            or value is Missing
            or existing is None
        ):
            return []
        current = schema.get_value(existing, attr)
        if is_empty(current):
            return []
        if is_empty(value) or not attr.values_equal(value, current):
            return [
                _issue(
                    attribute_key(schema, attr),
                    ValidationIssueKind.MUTABILITY,
                    "immutable attribute can not be changed",
                )
            ]
        return []

    def _check_type(
        self,
        data: dict[str, Any],
        schema: ResourceTypeSchema,
        attr: AttributeDefinition,
        operation: ValidationOperation,
        existing: Optional[Mapping[str, Any]],
    ) -> list[ValidationIssue]:
        value = schema.get_value(data, attr)
        if is_empty(value):
            return []
        return _check_value_type(attribute_key(schema, attr), attr, value)

    def _check_uniqueness(
        self,
        data: dict[str, Any],
        schema: ResourceTypeSchema,
        attr: AttributeDefinition,
        operation: ValidationOperation,
        existing: Optional[Mapping[str, Any]],
    ) -> list[ValidationIssue]:
        if attr.uniqueness is AttributeUniqueness.NONE or attr.is_complex:
            return []
        value = schema.get_value(data, attr)
        if is_empty(value):
            return []
        name = attribute_key(schema, attr)
        if self._storage is None:
            logger.debug("uniqueness_check_skipped", attribute=name, reason="no storage")
            return []

        scope = schema.name if attr.uniqueness is AttributeUniqueness.SERVER else None
        excluding_id = None
        if existing is not None:
            existing_id = get_value(existing, "id")
            excluding_id = None if is_empty(existing_id) else existing_id
        logger.debug(
            "uniqueness_check",
            resource_type=scope,
            attribute=name,
            excluding_id=excluding_id,
        )
        if self._storage.exists_with_value(scope, name, value, excluding_id=excluding_id):
            return [
                _issue(name, ValidationIssueKind.UNIQUENESS, f"value {value!r} is already in use")
            ]
        return []


def _issue(path: str, kind: ValidationIssueKind, message: str) -> ValidationIssue:
    return ValidationIssue(attribute_path=path, kind=kind, message=message)


def _items(path: str, attr: AttributeDefinition, value: Any) -> list[tuple[str, Any]]:
    if attr.multi_valued and isinstance(value, list):
        return [(f"{path}[{i}]", item) for i, item in enumerate(value)]
    return [(path, value)]


def _drop_read_only_sub_attrs(attr: AttributeDefinition, value: Any) -> None:
    for _, item in _items("", attr, value):
        if not isinstance(item, dict):
            continue
        for sub_attr in attr.sub_attributes:
            key = find_key(item, sub_attr.name)
            if key is None:
                continue
            if sub_attr.mutability is AttributeMutability.READ_ONLY:
                item.pop(key)
            elif sub_attr.is_complex and not is_empty(item[key]):
                _drop_read_only_sub_attrs(sub_attr, item[key])


def _check_value_type(path: str, attr: AttributeDefinition, value: Any) -> list[ValidationIssue]:
    if attr.multi_valued:
        if not isinstance(value, list):
            return [
                _issue(
                    path, ValidationIssueKind.TYPE, f"expected list of '{attr.type.value}' values"
                )
            ]
    elif isinstance(value, list):
        return [_issue(path, ValidationIssueKind.TYPE, "expected single value, got list")]

    issues = []
    for item_path, item in _items(path, attr, value):
        if is_empty(item):
            continue
        if not attr.is_valid_value(item):
            issues.append(
                _issue(
                    item_path,
                    ValidationIssueKind.TYPE,
                    f"expected '{attr.type.value}' value, got {type(item).__name__!r}",
                )
            )
            continue
        if attr.is_complex:
            for sub_attr in attr.sub_attributes:
                sub_value = get_value(item, sub_attr.name)
                if not is_empty(sub_value):
                    issues.extend(
                        _check_value_type(f"{item_path}.{sub_attr.name}", sub_attr, sub_value)
                    )
    return issues
