"""Exception hierarchy for schema replication.

Every error is fatal to a run.  Nothing in the pipeline retries; the only
compensating action is the rollback of the target transaction.

Usage:
    from schema_replicator.errors import ApplyError, ReplicationError

    try:
        await replicator.run()
    except ReplicationError as e:
        console.print(f"[bold red]x[/bold red] {e}")
"""


class ReplicationError(Exception):
    """Base class for all replication failures."""


class ConfigurationError(ReplicationError, ValueError):
    """A required connection parameter is missing or the driver is unsupported.

    Raised before any connection attempt.
    """


class DatabaseConnectionError(ReplicationError, ConnectionError):
    """The database could not be reached (auth, network, timeout)."""


class IntrospectionError(ReplicationError):
    """A catalog query failed or its rows could not be decoded.

    Attributes:
        phase: Which read failed: ``tables``, ``columns`` or ``constraints``.
        schema_name: Schema being introspected.
        side: ``source`` or ``target`` once the orchestrator knows it.
        cause: The underlying exception.
    """

    def __init__(
        self,
        phase: str,
        schema_name: str,
        cause: BaseException,
        side: str | None = None,
    ) -> None:
        self.phase = phase
        self.schema_name = schema_name
        self.cause = cause
        self.side = side
        where = f"{side} schema '{schema_name}'" if side else f"schema '{schema_name}'"
        super().__init__(f"Failed to read {phase} of {where}: {cause}")


class PlanningError(ReplicationError):
    """Reserved: the full-replace policy is pure and cannot fail."""


class ApplyError(ReplicationError):
    """A DDL statement failed inside the target transaction.

    The transaction is always rolled back when this is raised.

    Attributes:
        phase: ``drop``, ``create``, ``primary_key`` or ``foreign_key``.
        table: Table the statement was issued for.
        sql: The failing statement.
        message: Database error text.
    """

    def __init__(self, phase: str, table: str, sql: str, message: str) -> None:
        self.phase = phase
        self.table = table
        self.sql = sql
        self.message = message
        super().__init__(
            f"{phase} failed for table '{table}': {message}\n  Statement: {sql}"
        )
