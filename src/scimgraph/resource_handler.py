import itertools
from collections.abc import Mapping
from typing import Any, Optional

import structlog

import scimgraph.config
from scimgraph.data.filter import Filter
from scimgraph.error import (
    FilterNotSupportedError,
    PatchNotSupportedError,
    ScimValidationError,
    TooManyResultsError,
)
from scimgraph.query.lowering import lower
from scimgraph.registry import SchemaRegistry
from scimgraph.storage import Storage
from scimgraph.validator import ValidationOperation, Validator

logger = structlog.get_logger(__name__)


class ResourceHandler:
    """
    Ties the registry, the filter compiler, the validator, and the storage together for
    the resource endpoints.

    Args:
        registry: Registry with loaded schemas.
        storage: Storage executing queries and answering uniqueness checks.
        validator: Payload validator. If not provided, one using `storage` is created.
        config: Service provider configuration. If not provided,
            `scimgraph.config.service_provider_config` is used.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        storage: Storage,
        validator: Optional[Validator] = None,
        config: Optional[scimgraph.config.ServiceProviderConfig] = None,
    ) -> None:
        self.registry = registry
        self.storage = storage
        self.validator = validator or Validator(storage)
        self.config = config or scimgraph.config.service_provider_config

    def search(self, resource_type: str, filter_exp: Optional[str] = None) -> list[dict[str, Any]]:
        """
        Returns resources of the provided type that match the filter expression.

        Raises:
            UnknownResourceType: If the resource type is not registered.
            FilterNotSupportedError: If filter is provided, but filtering is not supported.
            FilterSyntaxError: If the filter expression is malformed.
            UnknownAttributeError: If the filter references unknown attribute.
            InvalidPathError: If the filter contains invalid attribute path.
            OperatorTypeError: If the filter applies operator to attribute of wrong type.
            TypeMismatchError: If the filter compares attribute with incompatible value.
            TooManyResultsError: If more resources match than `filter.max_results` allows.
        """
        schema = self.registry.snapshot().get(resource_type)
        if filter_exp is not None and filter_exp.strip() and not self.config.filter.supported:
            logger.info("filter_rejected", resource_type=schema.name, reason="not supported")
            raise FilterNotSupportedError()

        filter_ = Filter.deserialize_optional(filter_exp, max_depth=self.config.filter.max_depth)
        predicate = lower(filter_.root, schema) if filter_ is not None else None
        records = self.storage.execute(predicate, schema.name)

        max_results = self.config.filter.max_results
        if max_results is None:
            results = list(records)
        else:
            results = list(itertools.islice(records, max_results + 1))
            if len(results) > max_results:
                logger.info(
                    "search_rejected",
                    resource_type=schema.name,
                    filter=filter_exp,
                    reason="too many results",
                )
                raise TooManyResultsError(max_results)
        logger.debug(
            "search_completed",
            resource_type=schema.name,
            filter=str(filter_) if filter_ is not None else None,
            results=len(results),
        )
        return results

    def prepare_create(self, resource_type: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """
        Validates the payload of a new resource, and returns it without read-only values.

        Raises:
            UnknownResourceType: If the resource type is not registered.
            ScimValidationError: If the payload is not valid.
        """
        schema = self.registry.get(resource_type)
        result = self.validator.process(payload, schema, ValidationOperation.CREATE)
        if result.issues:
            raise ScimValidationError(result.issues)
        return result.data

    def prepare_patch(
        self,
        resource_type: str,
        payload: Mapping[str, Any],
        existing: Mapping[str, Any],
    ) -> dict[str, Any]:
        """
        Validates the partial payload against the existing resource, and returns it without
        read-only values.

        Raises:
            UnknownResourceType: If the resource type is not registered.
            PatchNotSupportedError: If patch is not supported by the service provider
                configuration.
            ScimValidationError: If the payload is not valid.
        """
        schema = self.registry.get(resource_type)
        if not self.config.patch.supported:
            logger.info("patch_rejected", resource_type=schema.name, reason="not supported")
            raise PatchNotSupportedError()
        result = self.validator.process(payload, schema, ValidationOperation.PATCH, existing)
        if result.issues:
            raise ScimValidationError(result.issues)
        return result.data
