"""Schema replication orchestrator.

Drives one full-replace run: confirm, introspect both sides, plan, then
drop/create/constrain the target inside a single transaction.  A failing
statement rolls the whole transaction back, so the target is never left
half-dropped or half-created.

State flow::

    idle -> confirming -> introspecting -> planning -> dropping -> creating
         -> constraining_pk -> constraining_fk -> committed

Any failure ends in ``rolled_back``; a declined confirmation ends in
``aborted``.

Usage:
    from schema_replicator.replicate import SchemaReplicator

    replicator = SchemaReplicator(
        source_url,
        target_url,
        confirm=lambda: True,
        on_progress=print,
    )
    result = await replicator.run()
    print(f"{result.tables_created} tables in {result.elapsed_seconds:.2f}s")
"""

import logging
import time
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, Field

from schema_replicator.adapters.base import DatabaseClient
from schema_replicator.adapters.postgres import AsyncPostgresAdapter
from schema_replicator.errors import (
    ApplyError,
    DatabaseConnectionError,
    IntrospectionError,
)
from schema_replicator.schema.ddl import render_set_search_path
from schema_replicator.schema.introspector import DEFAULT_SCHEMA, SchemaIntrospector
from schema_replicator.schema.models import DatabaseSchema
from schema_replicator.schema.planner import ChangePlan, Phase, plan_replacement

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]
ConfirmCallback = Callable[[], bool]


class ReplicationState(str, Enum):
    """Orchestrator state."""

    IDLE = "idle"
    CONFIRMING = "confirming"
    INTROSPECTING = "introspecting"
    PLANNING = "planning"
    DROPPING = "dropping"
    CREATING = "creating"
    CONSTRAINING_PK = "constraining_pk"
    CONSTRAINING_FK = "constraining_fk"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    ABORTED = "aborted"


PHASE_STATES = {
    Phase.DROP: ReplicationState.DROPPING,
    Phase.CREATE: ReplicationState.CREATING,
    Phase.PRIMARY_KEY: ReplicationState.CONSTRAINING_PK,
    Phase.FOREIGN_KEY: ReplicationState.CONSTRAINING_FK,
}

PHASE_LABELS = {
    Phase.DROP: "dropping table",
    Phase.CREATE: "creating table",
    Phase.PRIMARY_KEY: "adding primary key to",
    Phase.FOREIGN_KEY: "adding foreign key to",
}


class ReplicationResult(BaseModel):
    """Result of a replication run.

    Attributes:
        success: True if the plan was committed (or planned, for a dry run).
        aborted: True if the operator declined the confirmation.
        dry_run: True if nothing was executed.
        state: Final orchestrator state.
        tables_dropped: Number of target tables dropped.
        tables_created: Number of source tables created.
        columns_created: Number of columns across created tables.
        primary_keys_added: Number of primary keys added.
        foreign_keys_added: Number of foreign keys added.
        statements: Planned statements (populated for dry runs).
        elapsed_seconds: Wall time of the run.
    """

    success: bool = False
    aborted: bool = False
    dry_run: bool = False
    state: ReplicationState = ReplicationState.IDLE
    tables_dropped: int = 0
    tables_created: int = 0
    columns_created: int = 0
    primary_keys_added: int = 0
    foreign_keys_added: int = 0
    statements: list[str] = Field(default_factory=list)
    elapsed_seconds: float = 0.0


async def apply_plan(
    client: DatabaseClient,
    plan: ChangePlan,
    target_schema: str | None = None,
    on_progress: ProgressCallback | None = None,
    on_phase: Callable[[Phase], None] | None = None,
) -> int:
    """Execute a ChangePlan inside one transaction on *client*.

    Statements run in ``plan.statements()`` order.  The transaction commits
    only if every statement succeeds.

    Args:
        client: Target database client.
        plan: Plan from ``plan_replacement()``.
        target_schema: If set, ``SET LOCAL search_path`` is issued first so
            unqualified names resolve in that schema.
        on_progress: Optional status sink, e.g. ``"creating table users"``.
        on_phase: Optional callback invoked when the phase changes.

    Returns:
        Number of plan statements executed.

    Raises:
        ApplyError: If any statement fails, or if the transaction cannot be
            opened, committed or rolled back.  The target is left unchanged.
    """
    executed = 0
    current_phase: Phase | None = None
    # Which transaction boundary a non-statement failure belongs to
    boundary = ("begin", "BEGIN")

    try:
        async with client.transaction() as tx:
            boundary = ("rollback", "ROLLBACK")
            if target_schema:
                sql = render_set_search_path(target_schema)
                try:
                    await tx.execute(sql)
                except Exception as e:
                    raise ApplyError("setup", target_schema, sql, str(e)) from e

            for stmt in plan.statements():
                if stmt.phase is not current_phase:
                    current_phase = stmt.phase
                    logger.debug(f"Entering phase {current_phase.value}")
                    if on_phase is not None:
                        on_phase(current_phase)

                if on_progress is not None:
                    on_progress(f"{PHASE_LABELS[stmt.phase]} {stmt.table}")

                try:
                    await tx.execute(stmt.sql)
                except Exception as e:
                    raise ApplyError(stmt.phase.value, stmt.table, stmt.sql, str(e)) from e
                executed += 1

            boundary = ("commit", "COMMIT")
    except ApplyError:
        raise
    except Exception as e:
        phase, sql = boundary
        raise ApplyError(phase, target_schema or DEFAULT_SCHEMA, sql, str(e)) from e

    return executed


class SchemaReplicator:
    """Replaces the target schema with the shape of the source schema.

    Args:
        source_url: Source PostgreSQL connection URL.
        target_url: Target PostgreSQL connection URL.
        source_schema: Schema to read on the source (default: public).
        target_schema: Schema to rebuild on the target (default: public).
        confirm: Called once before anything destructive happens; must
            return True to proceed.  ``None`` never confirms.
        on_progress: Optional status sink for human-readable updates.
        excluded_tables: Table names ignored on both sides.
        connect_timeout: Seconds to wait for each connection.
        introspector_factory: Builds the schema reader (injectable for tests).
        adapter_factory: Builds the target client (injectable for tests).
    """

    def __init__(
        self,
        source_url: str,
        target_url: str,
        source_schema: str | None = DEFAULT_SCHEMA,
        target_schema: str | None = DEFAULT_SCHEMA,
        confirm: ConfirmCallback | None = None,
        on_progress: ProgressCallback | None = None,
        excluded_tables: set[str] | None = None,
        connect_timeout: int = 10,
        introspector_factory: Callable[..., SchemaIntrospector] = SchemaIntrospector,
        adapter_factory: Callable[..., DatabaseClient] = AsyncPostgresAdapter,
    ) -> None:
        self._source_url = source_url
        self._target_url = target_url
        self._source_schema = source_schema or DEFAULT_SCHEMA
        self._target_schema = target_schema or DEFAULT_SCHEMA
        self._confirm = confirm
        self._on_progress = on_progress
        self._excluded_tables = set(excluded_tables or ())
        self._connect_timeout = connect_timeout
        self._introspector_factory = introspector_factory
        self._adapter_factory = adapter_factory
        self.state = ReplicationState.IDLE

    def _progress(self, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(message)

    def _set_phase(self, phase: Phase) -> None:
        self.state = PHASE_STATES[phase]

    async def _read_schema(
        self,
        url: str,
        schema_name: str,
        side: str,
        include_constraints: bool,
    ) -> DatabaseSchema:
        self._progress(f"reading {side} schema {schema_name}")
        introspector = self._introspector_factory(
            url,
            excluded_tables=self._excluded_tables,
            connect_timeout=self._connect_timeout,
        )
        try:
            async with introspector:
                return await introspector.introspect(
                    schema_name, include_constraints=include_constraints
                )
        except IntrospectionError as e:
            raise IntrospectionError(e.phase, e.schema_name, e.cause, side=side) from e
        except DatabaseConnectionError as e:
            raise DatabaseConnectionError(f"{side}: {e}") from e

    async def plan(self) -> ChangePlan:
        """Introspect both sides and compute the full-replace plan.

        The source is read with constraints; the target without, since its
        constraints are dropped along with its tables.
        """
        self.state = ReplicationState.INTROSPECTING
        source = await self._read_schema(
            self._source_url, self._source_schema, "source", include_constraints=True
        )
        target = await self._read_schema(
            self._target_url, self._target_schema, "target", include_constraints=False
        )

        self.state = ReplicationState.PLANNING
        plan = plan_replacement(source, target)
        logger.debug(
            f"Planned {plan.statement_count} statements: "
            f"{len(plan.tables_to_drop)} drops, {len(plan.tables_to_create)} creates"
        )
        return plan

    async def _apply(self, plan: ChangePlan) -> None:
        client = self._adapter_factory(
            self._target_url, connect_timeout=self._connect_timeout
        )
        try:
            try:
                await client.test_connection()
            except Exception as e:
                raise DatabaseConnectionError(
                    f"target: Failed to connect to database: {e}"
                ) from e

            await apply_plan(
                client,
                plan,
                target_schema=self._target_schema,
                on_progress=self._on_progress,
                on_phase=self._set_phase,
            )
        finally:
            await client.close()

    async def run(self, dry_run: bool = False) -> ReplicationResult:
        """Run the replication.

        Args:
            dry_run: Plan only.  Skips the confirmation and executes nothing.

        Returns:
            ``ReplicationResult``.  ``aborted`` is True if the confirmation
            was declined.

        Raises:
            DatabaseConnectionError: If either database is unreachable.
            IntrospectionError: If a catalog query fails.
            ApplyError: If a DDL statement fails (target rolled back).
        """
        start = time.monotonic()
        result = ReplicationResult(dry_run=dry_run)

        if not dry_run:
            self.state = ReplicationState.CONFIRMING
            if self._confirm is None or not self._confirm():
                self.state = ReplicationState.ABORTED
                logger.info("Replication aborted by operator")
                result.aborted = True
                result.state = self.state
                return result

        try:
            plan = await self.plan()
            result.tables_dropped = len(plan.tables_to_drop)
            result.tables_created = len(plan.tables_to_create)
            result.columns_created = plan.column_count
            result.primary_keys_added = len(plan.primary_keys_to_add)
            result.foreign_keys_added = plan.foreign_key_count

            if dry_run:
                result.statements = [stmt.sql for stmt in plan.statements()]
                result.success = True
                result.state = self.state
                result.elapsed_seconds = time.monotonic() - start
                return result

            await self._apply(plan)
        except Exception:
            self.state = ReplicationState.ROLLED_BACK
            logger.debug("Replication failed; target left unchanged")
            raise

        self.state = ReplicationState.COMMITTED
        result.success = True
        result.state = self.state
        result.elapsed_seconds = time.monotonic() - start
        logger.info(
            f"Replicated {result.tables_created} tables "
            f"({result.columns_created} columns) in {result.elapsed_seconds:.2f}s"
        )
        return result
