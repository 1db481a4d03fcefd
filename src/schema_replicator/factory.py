"""Connection factory.

Turns ``ConnectionSettings`` into connection URLs, schema introspectors and
a ready-to-run ``SchemaReplicator``.  Required parameters are checked here,
before any connection is attempted.
"""

from urllib.parse import quote

from schema_replicator.config.loader import validate_replication_config
from schema_replicator.config.models import ConnectionSettings, ReplicationConfig
from schema_replicator.errors import ConfigurationError
from schema_replicator.replicate import (
    ConfirmCallback,
    ProgressCallback,
    SchemaReplicator,
)
from schema_replicator.schema.introspector import SchemaIntrospector


def validate_settings(settings: ConnectionSettings, side: str = "") -> None:
    """Ensure host, database and user are present.

    Raises:
        ConfigurationError: If any of them is empty.
    """
    missing = settings.missing_fields()
    if missing:
        label = f"{side} " if side else ""
        raise ConfigurationError(
            f"Must supply a {label}host, database, and user "
            f"(missing: {', '.join(missing)})"
        )


def resolve_url(settings: ConnectionSettings) -> str:
    """Build a ``postgresql://`` URL from connection settings.

    The password is optional; when present it is percent-escaped so
    characters like ``@`` or ``/`` survive inside the URL.

    Example:
        >>> resolve_url(ConnectionSettings(host="db", database="app", user="me", password="p@ss"))
        'postgresql://me:p%40ss@db:5432/app'

    Raises:
        ConfigurationError: If host, database or user is empty.
    """
    validate_settings(settings)

    user = quote(settings.user, safe="")
    if settings.password:
        credentials = f"{user}:{quote(settings.password, safe='')}"
    else:
        credentials = user

    return f"postgresql://{credentials}@{settings.host}:{settings.port}/{settings.database}"


def get_introspector(
    settings: ConnectionSettings,
    excluded_tables: set[str] | None = None,
    connect_timeout: int = 10,
) -> SchemaIntrospector:
    """Create a ``SchemaIntrospector`` for *settings* (not yet connected)."""
    return SchemaIntrospector(
        resolve_url(settings),
        excluded_tables=excluded_tables,
        connect_timeout=connect_timeout,
    )


def build_replicator(
    config: ReplicationConfig,
    confirm: ConfirmCallback | None = None,
    on_progress: ProgressCallback | None = None,
    excluded_tables: set[str] | None = None,
    connect_timeout: int = 10,
) -> SchemaReplicator:
    """Create a ``SchemaReplicator`` from a resolved configuration.

    Raises:
        ConfigurationError: On an unsupported driver or missing settings.
    """
    validate_replication_config(config)

    return SchemaReplicator(
        resolve_url(config.source),
        resolve_url(config.target),
        source_schema=config.source.schema_name,
        target_schema=config.target.schema_name,
        confirm=confirm,
        on_progress=on_progress,
        excluded_tables=excluded_tables,
        connect_timeout=connect_timeout,
    )
