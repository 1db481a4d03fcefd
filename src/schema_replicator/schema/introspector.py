"""PostgreSQL schema introspection via pg_catalog and information_schema.

This module queries the live database to extract schema information:
- Tables (pg_tables)
- Columns, data types, nullability, defaults (one bulk query per schema)
- Primary and foreign keys from pg_constraint (one bulk query per schema)

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections.  Reads
only -- nothing is ever written through the introspector.
"""

import logging
from collections import defaultdict

import psycopg

from schema_replicator.errors import DatabaseConnectionError, IntrospectionError
from schema_replicator.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    TableSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"


class SchemaIntrospector:
    """Introspects a PostgreSQL schema.

    Issues three queries per ``introspect()`` call no matter how many tables
    the schema holds: table names, all columns, all key constraints.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            # Full schema with primary and foreign keys
            schema = await introspector.introspect("public")

            # Tables and columns only
            schema = await introspector.introspect("public", include_constraints=False)

            # Just the table names
            names = await introspector.get_table_names()

    Args:
        database_url: PostgreSQL connection URL.
        excluded_tables: Table names to skip.  Defaults to none.
        connect_timeout: Seconds to wait for the connection.
    """

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | None = None,
        connect_timeout: int = 10,
    ) -> None:
        self._database_url = database_url
        self._excluded_tables: set[str] = set(excluded_tables or ())
        self._connect_timeout = connect_timeout
        self._conn: psycopg.AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the connection."""
        try:
            self._conn = await psycopg.AsyncConnection.connect(
                self._database_url,
                connect_timeout=self._connect_timeout,
            )
        except psycopg.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> psycopg.AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def test_connection(self) -> bool:
        """Run ``SELECT 1`` against the open connection.

        Raises:
            DatabaseConnectionError: If the query fails.
        """
        conn = self._require_connection()
        try:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
                row = await cur.fetchone()
        except psycopg.Error as e:
            raise DatabaseConnectionError(f"Connection test failed: {e}") from e
        return row is not None and row[0] == 1

    async def introspect(
        self,
        schema_name: str | None = DEFAULT_SCHEMA,
        include_constraints: bool = True,
    ) -> DatabaseSchema:
        """Introspect a full schema.

        Args:
            schema_name: PostgreSQL schema to read.  Empty or None means
                ``public``.
            include_constraints: Also read primary and foreign keys.

        Returns:
            DatabaseSchema with every table of the schema, including
            tables without columns.

        Raises:
            IntrospectionError: If any of the catalog queries fails.
        """
        self._require_connection()
        schema_name = schema_name or DEFAULT_SCHEMA

        table_names = await self._get_tables(schema_name)
        columns = await self._get_columns(schema_name, set(table_names))

        primary_keys: dict[str, str] = {}
        foreign_keys: dict[str, list[ForeignKeySchema]] = {}
        if include_constraints:
            primary_keys, foreign_keys = await self._get_constraints(
                schema_name, set(table_names)
            )

        # Build each table whole before it goes into the schema mapping
        tables: dict[str, TableSchema] = {}
        for name in table_names:
            tables[name] = TableSchema(
                name=name,
                primary_key=primary_keys.get(name),
                columns=tuple(columns.get(name, ())),
                foreign_keys=tuple(foreign_keys.get(name, ())),
            )

        schema = DatabaseSchema(schema_name=schema_name, tables=tables)
        logger.debug(
            f"Introspected schema '{schema_name}': {len(tables)} tables, "
            f"{schema.column_count} columns"
        )
        return schema

    async def get_table_names(self, schema_name: str | None = DEFAULT_SCHEMA) -> set[str]:
        """Get table names only (for advisory comparison).

        Args:
            schema_name: PostgreSQL schema to read (default: public).

        Returns:
            Set of table names.
        """
        self._require_connection()
        return set(await self._get_tables(schema_name or DEFAULT_SCHEMA))

    async def _get_tables(self, schema_name: str) -> list[str]:
        """Get all table names in schema, minus excluded tables."""
        query = """
            SELECT tablename
            FROM pg_tables
            WHERE schemaname = %s
            ORDER BY tablename
        """
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(query, (schema_name,))
                rows = await cur.fetchall()
            names = [row[0] for row in rows]
        except (psycopg.Error, IndexError, TypeError) as e:
            raise IntrospectionError("tables", schema_name, e) from e

        return [name for name in names if name not in self._excluded_tables]

    async def _get_columns(
        self, schema_name: str, table_names: set[str]
    ) -> dict[str, list[ColumnSchema]]:
        """Get columns for every table of the schema in one query.

        Rows for relations that are not in *table_names* (views, excluded
        tables) are ignored.
        """
        query = """
            SELECT
                table_name,
                column_name,
                data_type,
                udt_name,
                is_nullable,
                column_default
            FROM information_schema.columns
            WHERE table_schema = %s
            ORDER BY table_name, ordinal_position
        """
        columns: dict[str, list[ColumnSchema]] = defaultdict(list)
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(query, (schema_name,))
                rows = await cur.fetchall()

            for row in rows:
                table_name, col_name, data_type, udt_name, is_nullable, default = row
                if table_name not in table_names:
                    continue
                columns[table_name].append(
                    ColumnSchema(
                        name=col_name,
                        data_type=self._normalize_data_type(data_type, udt_name),
                        is_nullable=(is_nullable == "YES"),
                        default=default,
                    )
                )
        except (psycopg.Error, ValueError, TypeError, AttributeError) as e:
            raise IntrospectionError("columns", schema_name, e) from e

        return columns

    def _normalize_data_type(self, data_type: str, udt_name: str | None = None) -> str:
        """Normalize PostgreSQL data type names into usable DDL.

        ``ARRAY`` is rewritten from the element's udt name (``_int4`` ->
        ``int4[]``), ``USER-DEFINED`` becomes the udt name, and verbose
        information_schema names map to their short forms.
        """
        if data_type == "ARRAY" and udt_name:
            return udt_name.replace("_", "") + "[]"
        if data_type == "USER-DEFINED" and udt_name:
            return udt_name

        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "time with time zone": "timetz",
            "time without time zone": "time",
            "integer": "int",
            "boolean": "bool",
        }
        return type_map.get(data_type.lower(), data_type.lower())

    async def _get_constraints(
        self, schema_name: str, table_names: set[str]
    ) -> tuple[dict[str, str], dict[str, list[ForeignKeySchema]]]:
        """Get primary and foreign keys for every table in one query.

        Reads ``pg_constraint`` directly: it lists every constraint the
        login can see, whereas ``information_schema`` hides referenced
        columns of tables the login does not own.  Local and referenced
        key columns are paired by position (``conkey[i]`` -> ``confkey[i]``).

        Composite foreign keys cannot be expressed as single-column
        ``ForeignKeySchema`` entries and are skipped with a warning.

        Returns:
            Tuple of (table -> primary key column, table -> foreign keys).
        """
        query = """
            SELECT
                cl.relname AS table_name,
                con.conname AS constraint_name,
                con.contype::text AS constraint_type,
                att.attname AS column_name,
                fcl.relname AS references_table,
                fatt.attname AS references_column,
                cardinality(con.conkey) AS key_count
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class cl ON cl.oid = con.conrelid
            JOIN pg_catalog.pg_namespace ns ON ns.oid = cl.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(attnum, fattnum, ord)
            JOIN pg_catalog.pg_attribute att
                ON att.attrelid = con.conrelid AND att.attnum = k.attnum
            LEFT JOIN pg_catalog.pg_class fcl ON fcl.oid = con.confrelid
            LEFT JOIN pg_catalog.pg_attribute fatt
                ON fatt.attrelid = con.confrelid AND fatt.attnum = k.fattnum
            WHERE ns.nspname = %s
              AND con.contype IN ('p', 'f')
            ORDER BY cl.relname, con.conname, k.ord
        """
        primary_keys: dict[str, str] = {}
        foreign_keys: dict[str, list[ForeignKeySchema]] = defaultdict(list)
        skipped: set[tuple[str, str]] = set()
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(query, (schema_name,))
                rows = await cur.fetchall()

            for row in rows:
                (
                    table_name,
                    constraint_name,
                    ctype,
                    col_name,
                    ref_table,
                    ref_col,
                    key_count,
                ) = row
                if table_name not in table_names:
                    continue

                if ctype == "p":
                    current = primary_keys.get(table_name)
                    if current is None:
                        primary_keys[table_name] = col_name
                    elif current != col_name:
                        logger.warning(
                            f"Composite primary key {constraint_name} on {table_name}: "
                            f"only '{current}' is replicated, '{col_name}' ignored"
                        )
                elif ctype == "f":
                    if (table_name, constraint_name) in skipped:
                        continue
                    if key_count > 1:
                        skipped.add((table_name, constraint_name))
                        logger.warning(
                            f"Composite foreign key {constraint_name} on {table_name} "
                            f"({key_count} columns) is not replicated"
                        )
                        continue
                    if ref_table is None or ref_col is None:
                        skipped.add((table_name, constraint_name))
                        logger.warning(
                            f"Foreign key {constraint_name} on {table_name}: "
                            f"referenced column not visible, not replicated"
                        )
                        continue

                    fk = ForeignKeySchema(
                        column=col_name,
                        references_table=ref_table,
                        references_column=ref_col,
                    )
                    if fk not in foreign_keys[table_name]:
                        foreign_keys[table_name].append(fk)
        except (psycopg.Error, ValueError, TypeError) as e:
            raise IntrospectionError("constraints", schema_name, e) from e

        return primary_keys, foreign_keys
