"""Pydantic models for connection and replication configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class ConnectionSettings(BaseModel):
    """Parameters for one database connection."""

    host: str = ""
    port: int = 5432
    database: str = ""
    user: str = ""
    password: str | None = None  # Optional: trust-auth connections have none
    schema_name: str = "public"

    def missing_fields(self) -> list[str]:
        """Required fields (host, database, user) that are empty."""
        return [
            name
            for name in ("host", "database", "user")
            if not getattr(self, name)
        ]


class DatabaseProfile(ConnectionSettings):
    """Named connection profile from db.toml."""

    description: str = ""


class DatabaseConfig(BaseModel):
    """Complete profile configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)


class ReplicationConfig(BaseModel):
    """Resolved configuration for one replication run."""

    driver: str = "postgres"
    source: ConnectionSettings = Field(default_factory=ConnectionSettings)
    target: ConnectionSettings = Field(default_factory=ConnectionSettings)
