"""Configuration management: profiles, flags, environment and config models.

Usage:
    >>> from schema_replicator.config import resolve_replication_config, ReplicationConfig
"""

from schema_replicator.config.loader import (
    SETTINGS_FLAGS,
    SUPPORTED_DRIVERS,
    get_profile,
    load_db_config,
    resolve_replication_config,
    validate_replication_config,
    write_env_template,
)
from schema_replicator.config.models import (
    ConnectionSettings,
    DatabaseConfig,
    DatabaseProfile,
    ReplicationConfig,
)

__all__ = [
    "SETTINGS_FLAGS",
    "SUPPORTED_DRIVERS",
    "get_profile",
    "load_db_config",
    "resolve_replication_config",
    "validate_replication_config",
    "write_env_template",
    "ConnectionSettings",
    "DatabaseConfig",
    "DatabaseProfile",
    "ReplicationConfig",
]
