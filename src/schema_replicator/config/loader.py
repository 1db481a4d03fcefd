"""Configuration loading: TOML profiles, flags and environment variables.

Connection parameters for each side come from, in order of precedence:

1. An explicit command-line value
2. An environment variable (``SOURCE_HOST``, ``TARGET_PASSWORD``, ...),
   optionally prefixed (``--env-prefix APP_`` reads ``APP_SOURCE_HOST``)
3. A named profile from db.toml (``--source-profile dev``)
4. The model default
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import NamedTuple

from pydantic import ValidationError

from schema_replicator.config.models import (
    ConnectionSettings,
    DatabaseConfig,
    DatabaseProfile,
    ReplicationConfig,
)
from schema_replicator.errors import ConfigurationError

SUPPORTED_DRIVERS = ("postgres",)

DEFAULT_CONFIG_PATH = Path("db.toml")


class SettingFlag(NamedTuple):
    """One configurable value: CLI option, env var, and model field."""

    option: str  # CLI option without leading dashes
    env_var: str
    help: str
    required: bool
    side: str | None = None  # "source", "target" or None for global
    field: str | None = None  # ConnectionSettings field name

    @property
    def dest(self) -> str:
        """argparse destination name."""
        return self.option.replace("-", "_")


def _side_flags(side: str) -> list[SettingFlag]:
    title = side.capitalize()
    prefix = side.upper()
    return [
        SettingFlag(f"{side}-host", f"{prefix}_HOST", f"{title} database host", True, side, "host"),
        SettingFlag(f"{side}-port", f"{prefix}_PORT", f"{title} database port", False, side, "port"),
        SettingFlag(f"{side}-database", f"{prefix}_DATABASE", f"{title} database name", True, side, "database"),
        SettingFlag(f"{side}-schema", f"{prefix}_SCHEMA", f"{title} schema within the database", False, side, "schema_name"),
        SettingFlag(f"{side}-user", f"{prefix}_USER", f"{title} database user", True, side, "user"),
        SettingFlag(f"{side}-password", f"{prefix}_PASSWORD", f"{title} database password", False, side, "password"),
    ]


SETTINGS_FLAGS: list[SettingFlag] = [
    SettingFlag("driver", "DRIVER", "Database driver type (postgres)", True),
    *_side_flags("target"),
    *_side_flags("source"),
]


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load connection profiles from a TOML file.

    Expected layout::

        [profiles.dev]
        host = "localhost"
        database = "app"
        user = "postgres"
        description = "Local development"

    Args:
        config_path: Path to db.toml (default: ``./db.toml``)

    Returns:
        DatabaseConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the file is not valid TOML or a profile is
            malformed
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Database config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        try:
            profiles[name] = DatabaseProfile(**profile_data)
        except (ValidationError, TypeError) as e:
            raise ConfigurationError(f"Invalid profile '{name}' in {config_path}: {e}") from e

    return DatabaseConfig(profiles=profiles)


def get_profile(config: DatabaseConfig, name: str) -> DatabaseProfile:
    """Look up a profile by name.

    Raises:
        ConfigurationError: If the profile is not defined.
    """
    if name not in config.profiles:
        available = ", ".join(config.profiles) or "none"
        raise ConfigurationError(
            f"Profile '{name}' not found. Available: {available}"
        )
    return config.profiles[name]


def _first_set(*values: object) -> object | None:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def resolve_replication_config(
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
    env_prefix: str = "",
    source_profile: ConnectionSettings | None = None,
    target_profile: ConnectionSettings | None = None,
) -> ReplicationConfig:
    """Merge flags, environment and profiles into a ReplicationConfig.

    Empty strings count as unset at every level.

    Args:
        overrides: Explicit values keyed by ``SettingFlag.dest``
            (``source_host``, ``driver``, ...), e.g. ``vars(args)``.
        environ: Environment mapping (default: ``os.environ``).
        env_prefix: Prefix for environment variable names.
        source_profile: Base settings for the source side.
        target_profile: Base settings for the target side.

    Returns:
        ReplicationConfig (not yet validated; see
        ``validate_replication_config``).

    Raises:
        ConfigurationError: If a value cannot be coerced (e.g. a
            non-numeric port).
    """
    overrides = overrides or {}
    environ = os.environ if environ is None else environ
    profiles = {"source": source_profile, "target": target_profile}

    sides: dict[str, dict[str, object]] = {"source": {}, "target": {}}
    driver = None

    for flag in SETTINGS_FLAGS:
        explicit = overrides.get(flag.dest)
        from_env = environ.get(f"{env_prefix}{flag.env_var}")

        if flag.side is None:
            driver = _first_set(explicit, from_env)
            continue

        profile = profiles[flag.side]
        from_profile = getattr(profile, flag.field) if profile is not None else None
        value = _first_set(explicit, from_env, from_profile)
        if value is not None:
            sides[flag.side][flag.field] = value

    try:
        return ReplicationConfig(
            driver=driver or "postgres",
            source=ConnectionSettings(**sides["source"]),
            target=ConnectionSettings(**sides["target"]),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid connection settings: {e}") from e


def validate_replication_config(config: ReplicationConfig) -> None:
    """Check the driver and required parameters of both sides.

    Raises:
        ConfigurationError: On an unsupported driver or a missing host,
            database or user.
    """
    if config.driver.lower() not in SUPPORTED_DRIVERS:
        raise ConfigurationError(
            f"'{config.driver}' is not a supported database driver "
            f"(supported: {', '.join(SUPPORTED_DRIVERS)})"
        )

    for side, settings in (("source", config.source), ("target", config.target)):
        missing = settings.missing_fields()
        if missing:
            flags = ", ".join(f"--{side}-{name}" for name in missing)
            raise ConfigurationError(f"Missing required {side} settings: {flags}")


def write_env_template(
    path: Path,
    env_prefix: str = "",
    overwrite: bool = False,
) -> Path:
    """Write a .env file with one empty ``NAME=`` line per setting.

    Args:
        path: File to create.
        env_prefix: Prefix added to every variable name.
        overwrite: Replace an existing file.

    Returns:
        The written path.

    Raises:
        FileExistsError: If *path* exists and *overwrite* is False.
    """
    if path.exists() and not overwrite:
        raise FileExistsError(f"{path} already exists (use --force to overwrite)")

    lines = [f"{env_prefix}{flag.env_var}=" for flag in SETTINGS_FLAGS]
    path.write_text("\n".join(lines) + "\n")
    return path
