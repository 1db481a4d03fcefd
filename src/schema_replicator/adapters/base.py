"""Database client protocol definitions.

Defines the ``DatabaseClient`` Protocol the replicator applies DDL through,
and the ``Transaction`` Protocol yielded by ``DatabaseClient.transaction()``.
All I/O methods are ``async def``.

Usage:
    from schema_replicator.adapters.base import DatabaseClient

    async def rebuild(client: DatabaseClient) -> None:
        async with client.transaction() as tx:
            await tx.execute("DROP TABLE IF EXISTS users CASCADE;")
            await tx.execute("CREATE TABLE IF NOT EXISTS users(\\n    id int\\n);")
        await client.close()
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol


class Transaction(Protocol):
    """An open transaction on a single connection."""

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute one statement inside the transaction.

        Raises:
            Exception: Whatever the driver raises; the owning
                ``transaction()`` context then rolls back.
        """
        ...


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement."""

    def transaction(self) -> AbstractAsyncContextManager[Transaction]:
        """Open one transaction for a batch of statements.

        Commits when the ``async with`` block exits normally and rolls back
        when it exits with an exception.

        Example:
            async with client.transaction() as tx:
                await tx.execute("ALTER TABLE users ADD PRIMARY KEY (id);")
        """
        ...

    async def test_connection(self) -> bool:
        """Check that the database is reachable.

        Raises:
            Exception: If the database connection fails.
        """
        ...

    async def close(self) -> None:
        """Close database connections and clean up resources."""
        ...
