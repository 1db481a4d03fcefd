"""Change planning for full schema replacement.

Builds a ``ChangePlan`` from a source and a target ``DatabaseSchema``.
Pure sync logic -- no I/O, no database connections.

The policy is a full replace, not a minimal diff: every target table is
dropped and every source table is created, whether or not an identical
table already exists.  Primary and foreign keys come straight from the
source tables since the target's constraints disappear with its tables.

Usage:
    from schema_replicator.schema.planner import plan_replacement

    plan = plan_replacement(source_schema, target_schema)
    for stmt in plan.statements():
        print(stmt.phase.value, stmt.table, stmt.sql)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from schema_replicator.schema.ddl import (
    render_add_foreign_key,
    render_add_primary_key,
    render_create_table,
    render_drop_table,
)
from schema_replicator.schema.models import DatabaseSchema, ForeignKeySchema, TableSchema


class Phase(str, Enum):
    """Execution phase of a planned statement, in execution order."""

    DROP = "drop"
    CREATE = "create"
    PRIMARY_KEY = "primary_key"
    FOREIGN_KEY = "foreign_key"


@dataclass(frozen=True)
class PlannedStatement:
    """A single DDL statement tagged with its phase and table."""

    phase: Phase
    table: str
    sql: str


def _frozen_mapping(data: Mapping | None = None) -> Mapping:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class ChangePlan:
    """Plan for replacing the target schema with the source schema.

    Attributes:
        tables_to_drop: Every table currently in the target.
        tables_to_create: Every table of the source, in source order.
        primary_keys_to_add: Table name -> primary key column.
        foreign_keys_to_add: Table name -> foreign keys of that table.
    """

    tables_to_drop: tuple[str, ...] = ()
    tables_to_create: tuple[TableSchema, ...] = ()
    primary_keys_to_add: Mapping[str, str] = field(default_factory=_frozen_mapping)
    foreign_keys_to_add: Mapping[str, tuple[ForeignKeySchema, ...]] = field(
        default_factory=_frozen_mapping
    )

    def __post_init__(self) -> None:
        # Caller-supplied dicts are copied and frozen
        object.__setattr__(
            self, "primary_keys_to_add", _frozen_mapping(self.primary_keys_to_add)
        )
        object.__setattr__(
            self, "foreign_keys_to_add", _frozen_mapping(self.foreign_keys_to_add)
        )

    @property
    def has_changes(self) -> bool:
        """True if executing the plan would issue any statement."""
        return bool(self.tables_to_drop or self.tables_to_create)

    @property
    def column_count(self) -> int:
        """Number of columns that will be created."""
        return sum(len(t.columns) for t in self.tables_to_create)

    @property
    def foreign_key_count(self) -> int:
        """Number of foreign keys that will be added."""
        return sum(len(fks) for fks in self.foreign_keys_to_add.values())

    @property
    def statement_count(self) -> int:
        """Total number of DDL statements in the plan."""
        return (
            len(self.tables_to_drop)
            + len(self.tables_to_create)
            + len(self.primary_keys_to_add)
            + self.foreign_key_count
        )

    def statements(self) -> list[PlannedStatement]:
        """Render the plan as ordered DDL.

        Order is fixed: all drops, all creates, then every primary key
        before any foreign key.  A foreign key usually references another
        table's primary key, and PostgreSQL rejects the reference until
        that key exists.
        """
        stmts: list[PlannedStatement] = []

        for table_name in self.tables_to_drop:
            stmts.append(
                PlannedStatement(Phase.DROP, table_name, render_drop_table(table_name))
            )

        for table in self.tables_to_create:
            stmts.append(
                PlannedStatement(Phase.CREATE, table.name, render_create_table(table))
            )

        for table_name, column in self.primary_keys_to_add.items():
            stmts.append(
                PlannedStatement(
                    Phase.PRIMARY_KEY,
                    table_name,
                    render_add_primary_key(table_name, column),
                )
            )

        for table_name, foreign_keys in self.foreign_keys_to_add.items():
            for fk in foreign_keys:
                stmts.append(
                    PlannedStatement(
                        Phase.FOREIGN_KEY,
                        table_name,
                        render_add_foreign_key(table_name, fk),
                    )
                )

        return stmts


def plan_replacement(source: DatabaseSchema, target: DatabaseSchema) -> ChangePlan:
    """Plan a full replace of *target* by *source*.

    Args:
        source: Source schema, introspected with constraints.
        target: Target schema; only its table names are used.

    Returns:
        ``ChangePlan`` dropping every target table and creating every
        source table with its primary and foreign keys.

    Example:
        >>> plan = plan_replacement(source, DatabaseSchema())
        >>> plan.tables_to_drop
        ()
    """
    tables = tuple(source.tables.values())

    primary_keys = {t.name: t.primary_key for t in tables if t.primary_key}
    foreign_keys = {t.name: t.foreign_keys for t in tables if t.foreign_keys}

    return ChangePlan(
        tables_to_drop=tuple(target.tables),
        tables_to_create=tables,
        primary_keys_to_add=primary_keys,
        foreign_keys_to_add=foreign_keys,
    )
