"""schema-replicator: clone a PostgreSQL schema's shape into another database.

Introspects tables, columns, primary and foreign keys from a source schema
and rebuilds them in a target schema inside one transaction (drop and
recreate; rows are never copied).

Usage:
    from schema_replicator import SchemaReplicator, SchemaIntrospector
    from schema_replicator import plan_replacement, compare_tables
    from schema_replicator import resolve_replication_config, build_replicator
"""

__version__ = "0.1.0"

# Adapters
from schema_replicator.adapters.base import DatabaseClient
from schema_replicator.adapters.postgres import AsyncPostgresAdapter

# Config
from schema_replicator.config.loader import (
    load_db_config,
    resolve_replication_config,
    validate_replication_config,
)
from schema_replicator.config.models import (
    ConnectionSettings,
    DatabaseConfig,
    DatabaseProfile,
    ReplicationConfig,
)

# Errors
from schema_replicator.errors import (
    ApplyError,
    ConfigurationError,
    DatabaseConnectionError,
    IntrospectionError,
    PlanningError,
    ReplicationError,
)

# Factory
from schema_replicator.factory import build_replicator, resolve_url

# Orchestrator
from schema_replicator.replicate import (
    ReplicationResult,
    ReplicationState,
    SchemaReplicator,
    apply_plan,
)

# Schema
from schema_replicator.schema.comparator import compare_tables
from schema_replicator.schema.introspector import SchemaIntrospector
from schema_replicator.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    TableSchema,
)
from schema_replicator.schema.planner import ChangePlan, plan_replacement

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "resolve_replication_config",
    "validate_replication_config",
    "ConnectionSettings",
    "DatabaseConfig",
    "DatabaseProfile",
    "ReplicationConfig",
    # Errors
    "ReplicationError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "IntrospectionError",
    "PlanningError",
    "ApplyError",
    # Factory
    "build_replicator",
    "resolve_url",
    # Orchestrator
    "SchemaReplicator",
    "ReplicationResult",
    "ReplicationState",
    "apply_plan",
    # Schema
    "compare_tables",
    "SchemaIntrospector",
    "ColumnSchema",
    "ForeignKeySchema",
    "TableSchema",
    "DatabaseSchema",
    "ChangePlan",
    "plan_replacement",
]
