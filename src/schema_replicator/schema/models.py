"""Pydantic models for schema introspection and comparison.

This module contains schema-domain models:
- Introspection models: ColumnSchema, ForeignKeySchema, TableSchema,
  DatabaseSchema
- Advisory comparison: TableDiff

All introspection models are frozen.  A ``DatabaseSchema`` is a read-only
snapshot produced once per ``introspect()`` call.

Configuration models (ConnectionSettings, DatabaseProfile, ...) live in
schema_replicator.config.models.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a database column.

    Example:
        >>> col = ColumnSchema(name="id", data_type="int", is_nullable=False)
        >>> col.is_nullable
        False
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None  # Captured but never rendered into DDL


class ForeignKeySchema(BaseModel):
    """One outgoing reference from a column of the owning table."""

    model_config = ConfigDict(frozen=True)

    column: str
    references_table: str
    references_column: str


class TableSchema(BaseModel):
    """Schema for a database table.

    Only single-column primary keys are modelled.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    primary_key: str | None = None
    columns: tuple[ColumnSchema, ...] = ()  # Physical ordinal order
    foreign_keys: tuple[ForeignKeySchema, ...] = ()

    @property
    def column_names(self) -> list[str]:
        """Column names in ordinal order."""
        return [col.name for col in self.columns]

    def get_column(self, name: str) -> ColumnSchema | None:
        """Return the column called *name*, or None."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


class DatabaseSchema(BaseModel):
    """Complete schema snapshot for one (database, schema name) pair."""

    model_config = ConfigDict(frozen=True)

    schema_name: str = "public"
    tables: dict[str, TableSchema] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_table_keys(self) -> "DatabaseSchema":
        for key, table in self.tables.items():
            if key != table.name:
                raise ValueError(
                    f"Table key '{key}' does not match table name '{table.name}'"
                )
        return self

    @property
    def table_names(self) -> list[str]:
        """Sorted table names."""
        return sorted(self.tables)

    @property
    def column_count(self) -> int:
        """Total number of columns across all tables."""
        return sum(len(t.columns) for t in self.tables.values())


# ============================================================================
# Advisory Comparison Result
# ============================================================================


class TableDiff(BaseModel):
    """Table-name level difference between a source and a target schema.

    Example:
        >>> diff = TableDiff(new_tables=["orders"])
        >>> diff.in_sync
        False
        >>> diff.format_report()
        'Schema drift detected:\\n\\n  New tables (1):\\n    + orders'
    """

    new_tables: list[str] = Field(default_factory=list)
    removed_tables: list[str] = Field(default_factory=list)
    common_tables: list[str] = Field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        """True when both sides hold the same table names."""
        return not self.new_tables and not self.removed_tables

    def format_report(self) -> str:
        """Format the comparison as a human-readable report."""
        if self.in_sync:
            return "Table names in sync"

        lines = ["Schema drift detected:"]

        if self.new_tables:
            lines.append(f"\n  New tables ({len(self.new_tables)}):")
            for table in self.new_tables:
                lines.append(f"    + {table}")

        if self.removed_tables:
            lines.append(f"\n  Removed tables ({len(self.removed_tables)}):")
            for table in self.removed_tables:
                lines.append(f"    - {table}")

        return "\n".join(lines)
