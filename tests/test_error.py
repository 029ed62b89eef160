import pytest

from scimgraph.data.identifiers import AttrPath
from scimgraph.error import (
    FilterNotSupportedError,
    FilterSyntaxError,
    InvalidPathError,
    OperatorTypeError,
    PatchNotSupportedError,
    SchemaLoadError,
    ScimErrorType,
    ScimValidationError,
    TooManyResultsError,
    TypeMismatchError,
    UniquenessConflictError,
    UnknownAttributeError,
    UnknownResourceType,
    ValidationIssue,
    ValidationIssueKind,
)

ERROR_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:Error"


def test_filter_syntax_error_is_rendered():
    error = FilterSyntaxError("unexpected end of expression", 12, 'userName eq')

    assert error.position == 12
    assert error.expression == "userName eq"
    assert error.to_dict() == {
        "schemas": [ERROR_SCHEMA],
        "status": "400",
        "scimType": "invalidFilter",
        "detail": "unexpected end of expression (at position 12)",
    }


def test_error_without_scim_type_is_rendered():
    assert SchemaLoadError("no schemas").to_dict() == {
        "schemas": [ERROR_SCHEMA],
        "status": "500",
        "detail": "no schemas",
    }


@pytest.mark.parametrize(
    ("error", "status", "scim_type", "detail"),
    (
        (UnknownResourceType("Device"), 404, None, "unknown resource type 'Device'"),
        (
            UnknownAttributeError(AttrPath("name", "nickName"), "nickName"),
            400,
            ScimErrorType.INVALID_FILTER,
            "unknown attribute 'nickName' in path 'name.nickName'",
        ),
        (
            InvalidPathError(AttrPath("userName", "value"), "'userName' is not complex"),
            400,
            ScimErrorType.INVALID_FILTER,
            "invalid attribute path 'userName.value': 'userName' is not complex",
        ),
        (
            TypeMismatchError(AttrPath("active"), "yes", "boolean"),
            400,
            ScimErrorType.INVALID_VALUE,
            "value 'yes' is not compatible with 'boolean' attribute 'active'",
        ),
        (
            OperatorTypeError(AttrPath("active"), "gt", "boolean"),
            400,
            ScimErrorType.INVALID_FILTER,
            "operator 'gt' is not supported for 'boolean' attribute 'active'",
        ),
        (
            FilterNotSupportedError(),
            400,
            ScimErrorType.INVALID_FILTER,
            "filtering is not supported",
        ),
        (PatchNotSupportedError(), 501, None, "patch operation is not supported"),
        (
            TooManyResultsError(100),
            400,
            ScimErrorType.TOO_MANY,
            "the filter yields more than 100 results",
        ),
        (
            UniquenessConflictError("User", "userName", "bjensen"),
            409,
            ScimErrorType.UNIQUENESS,
            "value 'bjensen' of attribute 'userName' is already in use",
        ),
    ),
)
def test_error_status_and_type(error, status, scim_type, detail):
    assert error.status == status
    assert error.scim_type is scim_type
    assert error.detail == detail
    assert str(error) == detail


@pytest.mark.parametrize(
    ("kind", "status", "scim_type"),
    (
        (ValidationIssueKind.REQUIRED, 400, ScimErrorType.INVALID_VALUE),
        (ValidationIssueKind.TYPE, 400, ScimErrorType.INVALID_VALUE),
        (ValidationIssueKind.MUTABILITY, 400, ScimErrorType.MUTABILITY),
        (ValidationIssueKind.UNIQUENESS, 409, ScimErrorType.UNIQUENESS),
    ),
)
def test_validation_issue_status_and_type(kind, status, scim_type):
    issue = ValidationIssue(attribute_path="userName", kind=kind, message="oops")

    assert issue.status == status
    assert issue.scim_type is scim_type


def test_validation_issue_to_dict():
    issue = ValidationIssue(
        attribute_path="emails[0].value",
        kind=ValidationIssueKind.TYPE,
        message="expected 'string' value, got 'int'",
    )

    assert issue.to_dict() == {
        "attributePath": "emails[0].value",
        "kind": "type",
        "message": "expected 'string' value, got 'int'",
    }


def test_validation_error_takes_status_from_first_issue():
    error = ScimValidationError(
        [
            ValidationIssue("userName", ValidationIssueKind.UNIQUENESS, "value in use"),
            ValidationIssue("active", ValidationIssueKind.TYPE, "expected 'boolean' value"),
        ]
    )

    assert error.status == 409
    assert error.scim_type is ScimErrorType.UNIQUENESS
    assert error.detail == "userName: value in use; active: expected 'boolean' value"
    assert len(error.issues) == 2


def test_validation_error_requires_issues():
    with pytest.raises(ValueError, match="at least one validation issue"):
        ScimValidationError([])


def test_uniqueness_conflict_maps_to_validation_issue():
    issue = UniquenessConflictError(None, "badge", "B-1").to_issue()

    assert issue == ValidationIssue(
        attribute_path="badge",
        kind=ValidationIssueKind.UNIQUENESS,
        message="value 'B-1' of attribute 'badge' is already in use",
    )
    assert issue.status == 409
