import types

import pytest

from scimgraph.data.constants import ENTERPRISE_USER_SCHEMA
from scimgraph.data.filter import Filter
from scimgraph.error import UniquenessConflictError, UnknownResourceType, ValidationIssueKind
from scimgraph.query.lowering import lower
from scimgraph.storage import attribute_key


def _predicate(filter_exp, schema):
    return lower(Filter.deserialize(filter_exp).root, schema)


def test_added_record_gets_id(storage):
    record = storage.add("User", {"userName": "bjensen"})

    assert record["id"]
    assert storage.get("User", record["id"]) == record


def test_provided_id_is_kept(storage):
    record = storage.add("User", {"id": "2819c223", "userName": "bjensen"})

    assert record["id"] == "2819c223"


def test_stored_records_are_copies(storage):
    payload = {"userName": "bjensen", "emails": [{"value": "a@x.com"}]}
    record = storage.add("User", payload)
    payload["emails"][0]["value"] = "b@x.com"

    fetched = storage.get("User", record["id"])
    fetched["userName"] = "other"

    assert storage.get("User", record["id"]) == {
        "id": record["id"],
        "userName": "bjensen",
        "emails": [{"value": "a@x.com"}],
    }


def test_get_returns_none_if_no_record(storage):
    assert storage.get("User", "missing") is None


def test_server_unique_value_can_not_be_stored_twice(storage):
    storage.add("User", {"userName": "bjensen"})

    with pytest.raises(UniquenessConflictError) as exc_info:
        storage.add("User", {"userName": "BJensen"})

    error = exc_info.value
    assert error.status == 409
    assert error.resource_type == "User"
    assert error.attribute_name == "userName"
    issue = error.to_issue()
    assert issue.attribute_path == "userName"
    assert issue.kind is ValidationIssueKind.UNIQUENESS


def test_server_unique_value_can_be_used_by_other_resource_type(storage):
    storage.add("User", {"userName": "alice"})

    storage.add("Account", {"userName": "alice"})

    assert storage.exists_with_value("Account", "userName", "alice")


def test_global_unique_value_is_checked_across_resource_types(storage):
    storage.add("Account", {"userName": "alice", "badge": "B-1"})

    assert storage.exists_with_value(None, "badge", "B-1")
    assert not storage.exists_with_value(None, "badge", "b-1")
    with pytest.raises(UniquenessConflictError):
        storage.add("Account", {"userName": "bob", "badge": "B-1"})
    storage.add("Account", {"userName": "bob", "badge": "b-1"})


def test_case_insensitive_values_are_compared_case_insensitively(storage):
    storage.add("User", {"userName": "bjensen"})

    assert storage.exists_with_value("User", "userName", "BJENSEN")
    assert storage.exists_with_value("User", "USERNAME", "bjensen")
    assert not storage.exists_with_value("User", "userName", "jsmith")


def test_excluded_record_is_not_considered(storage):
    record = storage.add("User", {"userName": "bjensen"})

    assert not storage.exists_with_value(
        "User", "userName", "bjensen", excluding_id=record["id"]
    )


def test_extension_attribute_is_checked(storage):
    storage.add("User", {"userName": "bjensen", ENTERPRISE_USER_SCHEMA: {"employeeNumber": "7"}})

    assert storage.exists_with_value("User", f"{ENTERPRISE_USER_SCHEMA}:employeeNumber", "7")
    assert not storage.exists_with_value("User", f"{ENTERPRISE_USER_SCHEMA}:employeeNumber", "8")


def test_unknown_attribute_is_never_taken(storage):
    storage.add("User", {"userName": "bjensen"})

    assert not storage.exists_with_value(None, "nonexisting", "bjensen")


def test_attribute_key(user_schema):
    assert attribute_key(user_schema, user_schema.get_attr("userName")) == "userName"
    assert (
        attribute_key(user_schema, user_schema.get_attr("employeeNumber"))
        == f"{ENTERPRISE_USER_SCHEMA}:employeeNumber"
    )


def test_execute_returns_matching_records_lazily(storage, user_schema):
    storage.add("User", {"userName": "bjensen", "title": "Tour Guide"})
    storage.add("User", {"userName": "jsmith"})

    records = storage.execute(_predicate("title pr", user_schema), "User")

    assert isinstance(records, types.GeneratorType)
    assert [record["userName"] for record in records] == ["bjensen"]


def test_execute_without_predicate_returns_all_records(storage):
    storage.add("User", {"userName": "bjensen"})
    storage.add("User", {"userName": "jsmith"})
    storage.add("Group", {"displayName": "Tour Guides"})

    assert [record["userName"] for record in storage.execute(None, "user")] == [
        "bjensen",
        "jsmith",
    ]


def test_unknown_resource_type_is_rejected(storage):
    with pytest.raises(UnknownResourceType):
        storage.add("Device", {"name": "laptop"})
    with pytest.raises(UnknownResourceType):
        list(storage.execute(None, "Device"))


def test_record_is_replaced(storage):
    record = storage.add("User", {"userName": "bjensen"})

    storage.replace("User", {"id": record["id"], "userName": "babs"})

    assert storage.get("User", record["id"]) == {"id": record["id"], "userName": "babs"}


def test_replacing_record_keeps_its_own_unique_values(storage):
    record = storage.add("User", {"userName": "bjensen"})

    storage.replace("User", {"id": record["id"], "userName": "BJENSEN"})


def test_missing_record_can_not_be_replaced(storage):
    with pytest.raises(KeyError):
        storage.replace("User", {"id": "missing", "userName": "bjensen"})


def test_replace_conflict_is_rejected(storage):
    storage.add("User", {"userName": "bjensen"})
    record = storage.add("User", {"userName": "jsmith"})

    with pytest.raises(UniquenessConflictError):
        storage.replace("User", {"id": record["id"], "userName": "bjensen"})
    assert storage.get("User", record["id"])["userName"] == "jsmith"


def test_duplicated_id_is_rejected(storage):
    storage.add("User", {"id": "1", "userName": "bjensen"})

    with pytest.raises(UniquenessConflictError, match="'id'"):
        storage.add("User", {"id": "1", "userName": "jsmith"})
