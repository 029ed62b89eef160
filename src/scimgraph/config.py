from dataclasses import dataclass
from typing import Any, Optional

from scimgraph.data.constants import SERVICE_PROVIDER_CONFIG_SCHEMA
from scimgraph.data.filter import DEFAULT_MAX_DEPTH, MAX_DEPTH_LIMIT


@dataclass
class _GenericOption:
    supported: bool = False


@dataclass
class _FilterOption(_GenericOption):
    max_results: Optional[int] = None
    max_depth: int = DEFAULT_MAX_DEPTH
    supported: bool = False

    def __post_init__(self):
        if self.supported and not self.max_results:
            raise ValueError("'max_results' must be specified if filtering is supported")
        if not 1 <= self.max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(f"'max_depth' must be between 1 and {MAX_DEPTH_LIMIT}")


@dataclass(frozen=True)
class ServiceProviderConfig:
    """
    Service provider configuration. Available fields as defined in
     [RFC-7643](https://www.rfc-editor.org/rfc/rfc7643#section-5), limited to the
     features the package implements. Bulk operations, sorting, ETags, and password change
     are always reported as not supported.
    """

    documentation_uri: str
    patch: _GenericOption
    filter: _FilterOption

    @classmethod
    def create(
        cls,
        documentation_uri: str = "",
        patch: Optional[dict[str, Any]] = None,
        filter_: Optional[dict[str, Any]] = None,
    ):
        """
        Creates `ServiceProviderConfig` with all values defaulted, so operations are not supported
        by default.
        """
        return cls(
            documentation_uri=documentation_uri,
            patch=_GenericOption(**(patch or {})),
            filter=_FilterOption(**(filter_ or {})),
        )

    def to_dict(self) -> dict[str, Any]:
        filter_: dict[str, Any] = {"supported": self.filter.supported}
        if self.filter.max_results is not None:
            filter_["maxResults"] = self.filter.max_results
        output: dict[str, Any] = {
            "schemas": [SERVICE_PROVIDER_CONFIG_SCHEMA],
            "patch": {"supported": self.patch.supported},
            "bulk": {"supported": False, "maxOperations": 0, "maxPayloadSize": 0},
            "filter": filter_,
            "changePassword": {"supported": False},
            "sort": {"supported": False},
            "etag": {"supported": False},
            "authenticationSchemes": [],
        }
        if self.documentation_uri:
            output["documentationUri"] = self.documentation_uri
        return output


service_provider_config: ServiceProviderConfig = ServiceProviderConfig.create()


def set_service_provider_config(config: ServiceProviderConfig) -> None:
    """
    Sets global service provider configuration.
    """
    global service_provider_config
    service_provider_config = config
