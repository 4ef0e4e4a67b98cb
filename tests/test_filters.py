"""Tests for name patterns and ARM id helpers"""

import pytest

from azure_report_tools.utils.filters import (
    matches_any,
    name_from_id,
    resource_group_from_id,
    resource_type_from_id,
)

SQL_DB_ID = (
    "/subscriptions/sub/resourceGroups/Data-RG/providers/Microsoft.Sql/servers/sqlsrv/databases/appdb"
)


@pytest.mark.parametrize("value, patterns, expected", [
    ("web-01", [], True),
    ("web-01", None, True),
    ("web-01", ["WEB-*"], True),
    ("web-01", ["db-*", "*-01"], True),
    ("web-01", ["db-*"], False),
    (None, ["*"], True),
    ("prod", ["", "prod"], True),
])
def test_matches_any(value, patterns, expected):
    assert matches_any(value, patterns) is expected


def test_resource_group_from_id():
    assert resource_group_from_id(SQL_DB_ID) == "Data-RG"
    assert resource_group_from_id("/subscriptions/sub/resourcegroups/rg") == "rg"
    assert resource_group_from_id("/subscriptions/sub") == ""
    assert resource_group_from_id(None) == ""


def test_name_from_id():
    assert name_from_id(SQL_DB_ID) == "appdb"
    assert name_from_id(SQL_DB_ID + "/") == "appdb"
    assert name_from_id("") == ""


def test_resource_type_from_id():
    assert resource_type_from_id(SQL_DB_ID) == "Microsoft.Sql/servers/databases"
    assert resource_type_from_id(
        "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts/sa"
    ) == "Microsoft.Storage/storageAccounts"
    assert resource_type_from_id("/subscriptions/s/resourceGroups/rg") == ""
    assert resource_type_from_id(None) == ""
