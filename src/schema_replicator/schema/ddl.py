"""DDL rendering for replicated tables.

Pure string generation -- no I/O.  Identifiers come from the source
database's own catalog and are interpolated as-is.

Column defaults are captured by the introspector but never rendered:
replicated tables carry names, types and nullability only.

Usage:
    from schema_replicator.schema.ddl import render_create_table

    sql = render_create_table(table)
    # 'CREATE TABLE IF NOT EXISTS users(\\n    id int NOT NULL,\\n    name text\\n);'
"""

from schema_replicator.schema.models import ColumnSchema, ForeignKeySchema, TableSchema

INDENT = "    "


def render_column(column: ColumnSchema) -> str:
    """Render a single column definition (``name type [NOT NULL]``)."""
    definition = f"{column.name} {column.data_type}"
    if not column.is_nullable:
        definition += " NOT NULL"
    return definition


def render_create_table(table: TableSchema) -> str:
    """Generate a CREATE TABLE IF NOT EXISTS statement.

    One line per column, in the table's stored column order.  A table with
    no columns renders an empty column list, which PostgreSQL accepts.

    Example:
        >>> t = TableSchema(name="users", columns=(
        ...     ColumnSchema(name="id", data_type="int", is_nullable=False),
        ...     ColumnSchema(name="name", data_type="text"),
        ... ))
        >>> print(render_create_table(t))
        CREATE TABLE IF NOT EXISTS users(
            id int NOT NULL,
            name text
        );
    """
    lines = [f"{INDENT}{render_column(col)}" for col in table.columns]
    body = ",\n".join(lines)
    if body:
        body += "\n"
    return f"CREATE TABLE IF NOT EXISTS {table.name}(\n{body});"


def render_drop_table(table_name: str) -> str:
    """Generate a cascading DROP TABLE statement.

    CASCADE removes foreign keys that point at the table, so drops can run
    in any order.
    """
    return f"DROP TABLE IF EXISTS {table_name} CASCADE;"


def render_add_primary_key(table_name: str, column: str) -> str:
    """Generate ALTER TABLE ... ADD PRIMARY KEY."""
    return f"ALTER TABLE {table_name} ADD PRIMARY KEY ({column});"


def render_add_foreign_key(table_name: str, foreign_key: ForeignKeySchema) -> str:
    """Generate ALTER TABLE ... ADD FOREIGN KEY ... REFERENCES."""
    return (
        f"ALTER TABLE {table_name} ADD FOREIGN KEY ({foreign_key.column}) "
        f"REFERENCES {foreign_key.references_table}({foreign_key.references_column});"
    )


def render_set_search_path(schema_name: str) -> str:
    """Scope unqualified names to *schema_name* for the current transaction."""
    return f"SET LOCAL search_path TO {schema_name};"
