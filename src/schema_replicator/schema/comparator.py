"""Advisory table-name comparison using set operations.

Reports which tables the target lacks and which it has beyond the source.
Pure logic -- no I/O, no database connections.  Columns and constraints
are deliberately not compared; this is an inspection aid, not a planner.

Usage:
    from schema_replicator.schema.comparator import compare_tables
    from schema_replicator.schema.introspector import SchemaIntrospector

    async with SchemaIntrospector(source_url) as introspector:
        source_tables = await introspector.get_table_names()
    async with SchemaIntrospector(target_url) as introspector:
        target_tables = await introspector.get_table_names()

    diff = compare_tables(source_tables, target_tables)
    print(diff.format_report())
"""

from collections.abc import Iterable

from schema_replicator.schema.models import TableDiff


def compare_tables(
    source_tables: Iterable[str],
    target_tables: Iterable[str],
) -> TableDiff:
    """Compare source and target table names.

    - New tables: in *source_tables* but not in *target_tables*
    - Removed tables: in *target_tables* but not in *source_tables*
    - Common tables: in both

    All lists are sorted.

    Examples:
        >>> diff = compare_tables({"users", "orders"}, {"users"})
        >>> diff.new_tables
        ['orders']
        >>> compare_tables({"users"}, {"users"}).in_sync
        True
    """
    source: set[str] = set(source_tables)
    target: set[str] = set(target_tables)

    return TableDiff(
        new_tables=sorted(source - target),
        removed_tables=sorted(target - source),
        common_tables=sorted(source & target),
    )
