"""Schema introspection, planning and DDL generation.

Provides live database introspection (``SchemaIntrospector``), the frozen
schema model, full-replace planning (``plan_replacement``), DDL rendering,
and advisory table-name comparison (``compare_tables``).

Usage:
    from schema_replicator.schema import SchemaIntrospector, plan_replacement
    from schema_replicator.schema import compare_tables, render_create_table
"""

from schema_replicator.schema.comparator import compare_tables
from schema_replicator.schema.ddl import (
    render_add_foreign_key,
    render_add_primary_key,
    render_create_table,
    render_drop_table,
    render_set_search_path,
)
from schema_replicator.schema.introspector import SchemaIntrospector
from schema_replicator.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    TableDiff,
    TableSchema,
)
from schema_replicator.schema.planner import (
    ChangePlan,
    Phase,
    PlannedStatement,
    plan_replacement,
)

__all__ = [
    "compare_tables",
    "render_add_foreign_key",
    "render_add_primary_key",
    "render_create_table",
    "render_drop_table",
    "render_set_search_path",
    "SchemaIntrospector",
    "ColumnSchema",
    "DatabaseSchema",
    "ForeignKeySchema",
    "TableDiff",
    "TableSchema",
    "ChangePlan",
    "Phase",
    "PlannedStatement",
    "plan_replacement",
]
