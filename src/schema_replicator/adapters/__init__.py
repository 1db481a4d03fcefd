"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL adapter
the replicator applies DDL through.

Usage:
    from schema_replicator.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from schema_replicator.adapters.base import DatabaseClient, Transaction
from schema_replicator.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "Transaction",
    "AsyncPostgresAdapter",
]
