from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

ERROR_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:Error"


class ScimErrorType(str, Enum):
    INVALID_FILTER = "invalidFilter"
    TOO_MANY = "tooMany"
    UNIQUENESS = "uniqueness"
    MUTABILITY = "mutability"
    INVALID_SYNTAX = "invalidSyntax"
    INVALID_PATH = "invalidPath"
    NO_TARGET = "noTarget"
    INVALID_VALUE = "invalidValue"
    INVALID_VERS = "invalidVers"
    SENSITIVE = "sensitive"


class ScimError(Exception):
    """
    Base class for all errors raised by the package. Every error knows the HTTP status and
    the SCIM error type it corresponds to, and can be rendered as SCIM error response,
    as specified in RFC-7644, section 3.12.
    """

    status: int = 400
    scim_type: Optional[ScimErrorType] = None

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        output: dict[str, Any] = {
            "schemas": [ERROR_SCHEMA],
            "status": str(self.status),
            "detail": self.detail,
        }
        if self.scim_type is not None:
            output["scimType"] = self.scim_type.value
        return output


class SchemaLoadError(ScimError):
    """
    Raised when schema definitions are malformed or missing.
    """

    status = 500


class UnknownResourceType(ScimError):
    status = 404

    def __init__(self, resource_type: str):
        super().__init__(f"unknown resource type {resource_type!r}")
        self.resource_type = resource_type


class FilterSyntaxError(ScimError):
    """
    Raised when filter expression does not conform the filter grammar.

    Args:
        message: Description of the problem.
        position: 0-based offset of the offending token within the expression. Equal to the
            expression length, if the problem is unexpected end of the expression.
        expression: The filter expression.
    """

    scim_type = ScimErrorType.INVALID_FILTER

    def __init__(self, message: str, position: int, expression: str = ""):
        super().__init__(f"{message} (at position {position})")
        self.message = message
        self.position = position
        self.expression = expression


class UnknownAttributeError(ScimError):
    scim_type = ScimErrorType.INVALID_FILTER

    def __init__(self, attr_path: Any, segment: Any):
        super().__init__(f"unknown attribute {str(segment)!r} in path {str(attr_path)!r}")
        self.attr_path = attr_path
        self.segment = segment


class InvalidPathError(ScimError):
    scim_type = ScimErrorType.INVALID_FILTER

    def __init__(self, attr_path: Any, reason: str):
        super().__init__(f"invalid attribute path {str(attr_path)!r}: {reason}")
        self.attr_path = attr_path
        self.reason = reason


class TypeMismatchError(ScimError):
    scim_type = ScimErrorType.INVALID_VALUE

    def __init__(self, attr_path: Any, value: Any, expected: str):
        super().__init__(
            f"value {value!r} is not compatible with {expected!r} attribute {str(attr_path)!r}"
        )
        self.attr_path = attr_path
        self.value = value
        self.expected = expected


class OperatorTypeError(ScimError):
    scim_type = ScimErrorType.INVALID_FILTER

    def __init__(self, attr_path: Any, operator: str, attr_type: str):
        super().__init__(
            f"operator {operator!r} is not supported for {attr_type!r} attribute "
            f"{str(attr_path)!r}"
        )
        self.attr_path = attr_path
        self.operator = operator
        self.attr_type = attr_type


class FilterNotSupportedError(ScimError):
    scim_type = ScimErrorType.INVALID_FILTER

    def __init__(self):
        super().__init__("filtering is not supported")


class PatchNotSupportedError(ScimError):
    status = 501

    def __init__(self):
        super().__init__("patch operation is not supported")


class TooManyResultsError(ScimError):
    scim_type = ScimErrorType.TOO_MANY

    def __init__(self, max_results: int):
        super().__init__(f"the filter yields more than {max_results} results")
        self.max_results = max_results


class ValidationIssueKind(str, Enum):
    REQUIRED = "required"
    MUTABILITY = "mutability"
    TYPE = "type"
    UNIQUENESS = "uniqueness"


_ERROR_BY_ISSUE_KIND: dict[ValidationIssueKind, tuple[int, ScimErrorType]] = {
    ValidationIssueKind.REQUIRED: (400, ScimErrorType.INVALID_VALUE),
    ValidationIssueKind.TYPE: (400, ScimErrorType.INVALID_VALUE),
    ValidationIssueKind.MUTABILITY: (400, ScimErrorType.MUTABILITY),
    ValidationIssueKind.UNIQUENESS: (409, ScimErrorType.UNIQUENESS),
}


@dataclass(frozen=True)
class ValidationIssue:
    """
    Single problem found during payload validation.

    Args:
        attribute_path: Path of the attribute the issue relates to, e.g. `emails[0].value`.
        kind: Kind of the violated rule.
        message: Human-readable description of the problem.
    """

    attribute_path: str
    kind: ValidationIssueKind
    message: str

    @property
    def status(self) -> int:
        return _ERROR_BY_ISSUE_KIND[self.kind][0]

    @property
    def scim_type(self) -> ScimErrorType:
        return _ERROR_BY_ISSUE_KIND[self.kind][1]

    def to_dict(self) -> dict[str, str]:
        return {
            "attributePath": self.attribute_path,
            "kind": self.kind.value,
            "message": self.message,
        }


class ScimValidationError(ScimError):
    """
    Raised by callers that turn non-empty list of validation issues into an error response.
    Status and SCIM error type are taken from the first issue.
    """

    def __init__(self, issues: Sequence[ValidationIssue]):
        if not issues:
            raise ValueError("at least one validation issue is required")
        self.issues = list(issues)
        super().__init__(
            "; ".join(f"{issue.attribute_path}: {issue.message}" for issue in self.issues)
        )
        self.status = self.issues[0].status
        self.scim_type = self.issues[0].scim_type


class UniquenessConflictError(ScimError):
    """
    Raised by storage when the storage-level uniqueness constraint is violated. Callers map
    it to the same uniqueness issue the validator reports.
    """

    status = 409
    scim_type = ScimErrorType.UNIQUENESS

    def __init__(self, resource_type: Optional[str], attribute_name: str, value: Any):
        super().__init__(
            f"value {value!r} of attribute {attribute_name!r} is already in use"
        )
        self.resource_type = resource_type
        self.attribute_name = attribute_name
        self.value = value

    def to_issue(self) -> ValidationIssue:
        return ValidationIssue(
            attribute_path=self.attribute_name,
            kind=ValidationIssueKind.UNIQUENESS,
            message=self.detail,
        )

