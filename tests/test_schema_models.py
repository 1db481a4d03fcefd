"""Tests for the frozen schema model and the advisory comparator."""

import pytest
from pydantic import ValidationError

from schema_replicator.schema.comparator import compare_tables
from schema_replicator.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    TableDiff,
    TableSchema,
)


def _users() -> TableSchema:
    return TableSchema(
        name="users",
        primary_key="id",
        columns=(
            ColumnSchema(name="id", data_type="int", is_nullable=False),
            ColumnSchema(name="name", data_type="text"),
        ),
    )


class TestColumnSchema:
    """Verify ColumnSchema defaults and immutability."""

    def test_defaults(self):
        col = ColumnSchema(name="id", data_type="uuid")
        assert col.is_nullable is True
        assert col.default is None

    def test_frozen(self):
        col = ColumnSchema(name="id", data_type="uuid")
        with pytest.raises(ValidationError):
            col.name = "other"


class TestTableSchema:
    """Verify TableSchema helpers and immutability."""

    def test_column_names_in_order(self):
        assert _users().column_names == ["id", "name"]

    def test_get_column(self):
        table = _users()
        assert table.get_column("name").data_type == "text"
        assert table.get_column("missing") is None

    def test_defaults_empty(self):
        table = TableSchema(name="empty")
        assert table.primary_key is None
        assert table.columns == ()
        assert table.foreign_keys == ()

    def test_frozen(self):
        table = _users()
        with pytest.raises(ValidationError):
            table.primary_key = "name"

    def test_foreign_keys_are_hashable(self):
        fk = ForeignKeySchema(column="user_id", references_table="users", references_column="id")
        same = ForeignKeySchema(column="user_id", references_table="users", references_column="id")
        assert len({fk, same}) == 1


class TestDatabaseSchema:
    """Verify DatabaseSchema invariants."""

    def test_key_must_match_table_name(self):
        with pytest.raises(ValidationError, match="does not match"):
            DatabaseSchema(tables={"people": _users()})

    def test_table_names_sorted(self):
        schema = DatabaseSchema(
            tables={"users": _users(), "accounts": TableSchema(name="accounts")}
        )
        assert schema.table_names == ["accounts", "users"]

    def test_column_count(self):
        schema = DatabaseSchema(
            tables={"users": _users(), "accounts": TableSchema(name="accounts")}
        )
        assert schema.column_count == 2

    def test_default_schema_name(self):
        assert DatabaseSchema().schema_name == "public"


class TestCompareTables:
    """Verify the advisory table-name comparison."""

    def test_in_sync(self):
        diff = compare_tables({"users", "orders"}, {"orders", "users"})
        assert diff.in_sync
        assert diff.common_tables == ["orders", "users"]
        assert diff.format_report() == "Table names in sync"

    def test_new_tables(self):
        diff = compare_tables({"users", "orders"}, {"users"})
        assert diff.new_tables == ["orders"]
        assert diff.removed_tables == []
        assert not diff.in_sync

    def test_removed_tables(self):
        diff = compare_tables({"users"}, {"users", "legacy"})
        assert diff.removed_tables == ["legacy"]
        assert diff.new_tables == []

    def test_accepts_any_iterable(self):
        diff = compare_tables(["b", "a", "a"], iter(["c"]))
        assert diff.new_tables == ["a", "b"]
        assert diff.removed_tables == ["c"]

    def test_both_empty(self):
        assert compare_tables(set(), set()).in_sync

    def test_report_lists_both_sides(self):
        report = TableDiff(new_tables=["orders"], removed_tables=["legacy"]).format_report()
        assert "New tables (1)" in report
        assert "+ orders" in report
        assert "Removed tables (1)" in report
        assert "- legacy" in report
