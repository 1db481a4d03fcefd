"""Tests for the schema-replicator CLI.

Commands are driven through ``main(argv)`` with the replicator and
introspector factories patched, so no database is touched.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from schema_replicator.cli import (
    REPLACE_WARNING,
    StatusSink,
    _parse_excluded,
    build_parser,
    cmd_replace,
    main,
    prompt_yes_no,
)
from schema_replicator.config.loader import SETTINGS_FLAGS
from schema_replicator.errors import ApplyError, DatabaseConnectionError
from schema_replicator.replicate import ReplicationResult, ReplicationState


CONNECTION_FLAGS = [
    "--source-host", "source.db",
    "--source-database", "app",
    "--source-user", "reader",
    "--target-host", "target.db",
    "--target-database", "app",
    "--target-user", "writer",
]

PROFILES_TOML = """
[profiles.dev]
host = "localhost"
database = "app_dev"
user = "postgres"
description = "Local development"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run each test in an empty directory with no connection variables set."""
    for flag in SETTINGS_FLAGS:
        monkeypatch.delenv(flag.env_var, raising=False)
    monkeypatch.chdir(tmp_path)


def _mock_replicator(result=None, error=None) -> MagicMock:
    replicator = MagicMock()
    replicator.state = ReplicationState.ROLLED_BACK if error else ReplicationState.COMMITTED
    replicator.run = AsyncMock(return_value=result, side_effect=error)
    return replicator


class FakeReader:
    """Async context manager returning fixed table names."""

    def __init__(self, names):
        self.get_table_names = AsyncMock(return_value=set(names))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


# ============================================================
# Test: Interactive helpers
# ============================================================


class TestPromptYesNo:
    """Verify the confirmation prompt loop."""

    def test_reprompts_until_valid(self):
        answers = iter(["maybe", "", "  Y  "])
        prompts = []

        def fake_input(prompt):
            prompts.append(prompt)
            return next(answers)

        assert prompt_yes_no("proceed?", input_fn=fake_input) is True
        assert prompts == ["proceed? (y/n): "] * 3

    @pytest.mark.parametrize("answer", ["n", "no", "NO"])
    def test_no(self, answer):
        assert prompt_yes_no("proceed?", input_fn=lambda _: answer) is False

    @pytest.mark.parametrize("answer", ["y", "yes", "Yes"])
    def test_yes(self, answer):
        assert prompt_yes_no("proceed?", input_fn=lambda _: answer) is True

    def test_eof_is_no(self):
        def closed_stdin(prompt):
            raise EOFError

        assert prompt_yes_no("proceed?", input_fn=closed_stdin) is False


class TestStatusSink:
    def test_starts_lazily_and_updates(self):
        console = MagicMock()
        sink = StatusSink(console)
        console.status.assert_not_called()

        sink("reading source schema public")
        sink("creating table users")
        sink.stop()

        console.status.assert_called_once_with("reading source schema public")
        status = console.status.return_value
        status.start.assert_called_once()
        status.update.assert_called_once_with("creating table users")
        status.stop.assert_called_once()

    def test_stop_without_start(self):
        StatusSink(MagicMock()).stop()


class TestParseExcluded:
    def test_comma_separated(self):
        assert _parse_excluded("a, b,,c ") == {"a", "b", "c"}

    def test_empty(self):
        assert _parse_excluded(None) == set()
        assert _parse_excluded("") == set()


# ============================================================
# Test: Parser
# ============================================================


class TestParser:
    """Verify argparse wiring."""

    def test_replace_options(self):
        args = build_parser().parse_args(
            ["--source-host", "a", "replace", "--dry-run", "--exclude", "x,y"]
        )
        assert args.source_host == "a"
        assert args.target_host is None
        assert args.dry_run is True
        assert args.yes is False
        assert args.exclude == "x,y"
        assert args.connect_timeout == 10
        assert args.func is cmd_replace

    def test_every_setting_has_an_option(self):
        args = build_parser().parse_args(["profiles"])
        for flag in SETTINGS_FLAGS:
            assert hasattr(args, flag.dest)

    def test_required_settings_marked_in_help(self):
        helps = {action.dest: action.help for action in build_parser()._actions}

        assert helps["source_host"] == "Source database host (required) [env: SOURCE_HOST]"
        assert "(required)" in helps["target_user"]
        assert "(required)" in helps["driver"]
        assert helps["source_port"] == "Source database port [env: SOURCE_PORT]"
        assert "(required)" not in helps["target_password"]

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ============================================================
# Test: init
# ============================================================


class TestInitCommand:
    """Verify .env template creation."""

    def test_writes_env_file(self, tmp_path):
        assert main(["init"]) == 0
        content = (tmp_path / ".env").read_text()
        assert content.startswith("DRIVER=\nTARGET_HOST=\n")

    def test_existing_file_kept(self, tmp_path, capsys):
        (tmp_path / ".env").write_text("SOURCE_HOST=keep\n")

        assert main(["init"]) == 1

        assert (tmp_path / ".env").read_text() == "SOURCE_HOST=keep\n"
        assert "already exists" in capsys.readouterr().out

    def test_force_overwrites(self, tmp_path):
        (tmp_path / ".env").write_text("SOURCE_HOST=keep\n")
        assert main(["init", "--force"]) == 0
        assert "keep" not in (tmp_path / ".env").read_text()

    def test_custom_file_and_prefix(self, tmp_path):
        assert main(["--env-file", "replica.env", "--env-prefix", "APP_", "init"]) == 0
        assert (tmp_path / "replica.env").read_text().startswith("APP_DRIVER=")


# ============================================================
# Test: replace
# ============================================================


class TestReplaceCommand:
    """Verify replace command output and exit codes."""

    def test_missing_settings(self, capsys):
        with patch("schema_replicator.cli.build_replicator") as mock_build:
            assert main(["replace", "--yes"]) == 1

        mock_build.assert_not_called()
        assert "Missing required source settings" in capsys.readouterr().out

    def test_unsupported_driver(self, capsys):
        with patch("schema_replicator.cli.build_replicator") as mock_build:
            assert main(["--driver", "mysql", *CONNECTION_FLAGS, "replace", "--yes"]) == 1

        mock_build.assert_not_called()
        assert "not a supported database driver" in capsys.readouterr().out

    def test_loads_env_file(self):
        with patch("schema_replicator.cli.load_dotenv") as mock_load:
            main(["replace", "--yes"])
        mock_load.assert_called_once_with(Path(".env"))

    def test_settings_from_environment(self, monkeypatch):
        for side in ("SOURCE", "TARGET"):
            monkeypatch.setenv(f"{side}_HOST", f"{side.lower()}.env")
            monkeypatch.setenv(f"{side}_DATABASE", "app")
            monkeypatch.setenv(f"{side}_USER", "admin")
        replicator = _mock_replicator(ReplicationResult(success=True))

        with patch("schema_replicator.cli.build_replicator", return_value=replicator) as mock_build:
            assert main(["--target-host", "flag.db", "replace", "--yes"]) == 0

        config = mock_build.call_args.args[0]
        assert config.source.host == "source.env"
        assert config.target.host == "flag.db"

    def test_success_summary(self, capsys):
        result = ReplicationResult(
            success=True,
            state=ReplicationState.COMMITTED,
            tables_dropped=1,
            tables_created=2,
            columns_created=4,
            primary_keys_added=2,
            foreign_keys_added=1,
            elapsed_seconds=0.5,
        )
        replicator = _mock_replicator(result)

        with patch("schema_replicator.cli.build_replicator", return_value=replicator) as mock_build:
            assert main([*CONNECTION_FLAGS, "replace", "--yes", "--exclude", "audit"]) == 0

        kwargs = mock_build.call_args.kwargs
        assert kwargs["excluded_tables"] == {"audit"}
        assert kwargs["connect_timeout"] == 10
        assert kwargs["confirm"]() is True
        replicator.run.assert_awaited_once_with(dry_run=False)

        out = capsys.readouterr().out
        assert "Schema replicated" in out
        assert "Tables created: 2" in out
        assert "Foreign keys added: 1" in out
        assert "Finished in 0.50 seconds" in out

    def test_confirmation_prompts(self):
        replicator = _mock_replicator(ReplicationResult(aborted=True))

        with patch("schema_replicator.cli.build_replicator", return_value=replicator) as mock_build, \
             patch("schema_replicator.cli.prompt_yes_no", return_value=False) as mock_prompt:
            main([*CONNECTION_FLAGS, "replace"])
            confirm = mock_build.call_args.kwargs["confirm"]
            assert confirm() is False

        mock_prompt.assert_called_once_with(REPLACE_WARNING)

    def test_declined(self, capsys):
        replicator = _mock_replicator(ReplicationResult(aborted=True))

        with patch("schema_replicator.cli.build_replicator", return_value=replicator):
            assert main([*CONNECTION_FLAGS, "replace"]) == 0

        assert "Aborted. No changes made." in capsys.readouterr().out

    def test_dry_run_prints_statements(self, capsys):
        result = ReplicationResult(
            success=True,
            dry_run=True,
            statements=[
                "DROP TABLE IF EXISTS legacy CASCADE;",
                "ALTER TABLE orders ADD FOREIGN KEY (user_id) REFERENCES users(id);",
            ],
        )
        replicator = _mock_replicator(result)

        with patch("schema_replicator.cli.build_replicator", return_value=replicator):
            assert main([*CONNECTION_FLAGS, "replace", "--dry-run"]) == 0

        replicator.run.assert_awaited_once_with(dry_run=True)
        out = capsys.readouterr().out
        assert "DROP TABLE IF EXISTS legacy CASCADE;" in out
        assert "REFERENCES users(id);" in out
        assert "DRY RUN" in out

    def test_apply_failure(self, capsys):
        error = ApplyError(
            "foreign_key",
            "orders",
            "ALTER TABLE orders ADD FOREIGN KEY (user_id) REFERENCES users(id);",
            "there is no unique constraint matching given keys",
        )
        replicator = _mock_replicator(error=error)

        with patch("schema_replicator.cli.build_replicator", return_value=replicator):
            assert main([*CONNECTION_FLAGS, "replace", "--yes"]) == 1

        out = capsys.readouterr().out
        assert "foreign_key failed for table 'orders'" in out
        assert "rolled_back" in out

    def test_connection_failure(self, capsys):
        replicator = _mock_replicator(
            error=DatabaseConnectionError("source: Failed to connect to database: timeout")
        )

        with patch("schema_replicator.cli.build_replicator", return_value=replicator):
            assert main([*CONNECTION_FLAGS, "replace", "--yes"]) == 1

        assert "source: Failed to connect" in capsys.readouterr().out

    def test_profiles_supply_settings(self, tmp_path):
        (tmp_path / "db.toml").write_text(PROFILES_TOML)
        replicator = _mock_replicator(ReplicationResult(success=True))

        with patch("schema_replicator.cli.build_replicator", return_value=replicator) as mock_build:
            code = main(
                ["--source-profile", "dev", "--target-profile", "dev",
                 "--target-database", "app_copy", "replace", "--yes"]
            )

        assert code == 0
        config = mock_build.call_args.args[0]
        assert config.source.host == "localhost"
        assert config.target.database == "app_copy"

    def test_unknown_profile(self, tmp_path, capsys):
        (tmp_path / "db.toml").write_text(PROFILES_TOML)
        assert main(["--source-profile", "prod", "replace", "--yes"]) == 1
        assert "Profile 'prod' not found" in capsys.readouterr().out


# ============================================================
# Test: diff
# ============================================================


class TestDiffCommand:
    """Verify the advisory table-name comparison command."""

    def test_in_sync(self, capsys):
        readers = [FakeReader({"users", "orders"}), FakeReader({"orders", "users"})]

        with patch("schema_replicator.cli.get_introspector", side_effect=readers):
            assert main([*CONNECTION_FLAGS, "diff"]) == 0

        assert "in sync (2 tables)" in capsys.readouterr().out

    def test_drift(self, capsys):
        readers = [FakeReader({"users", "orders"}), FakeReader({"users", "legacy"})]

        with patch("schema_replicator.cli.get_introspector", side_effect=readers) as mock_get:
            assert main([*CONNECTION_FLAGS, "diff", "--exclude", "audit"]) == 1

        assert mock_get.call_args_list[0].args[1] == {"audit"}
        readers[0].get_table_names.assert_awaited_once_with("public")
        out = capsys.readouterr().out
        assert "orders" in out
        assert "NEW" in out
        assert "legacy" in out
        assert "REMOVED" in out

    def test_connection_failure(self, capsys):
        reader = MagicMock()
        reader.__aenter__ = AsyncMock(
            side_effect=DatabaseConnectionError("Failed to connect to database: refused")
        )
        reader.__aexit__ = AsyncMock(return_value=None)

        with patch("schema_replicator.cli.get_introspector", return_value=reader):
            assert main([*CONNECTION_FLAGS, "diff"]) == 1

        assert "refused" in capsys.readouterr().out


# ============================================================
# Test: profiles
# ============================================================


class TestProfilesCommand:
    def test_lists_profiles(self, tmp_path, capsys):
        (tmp_path / "db.toml").write_text(PROFILES_TOML)

        assert main(["profiles"]) == 0

        out = capsys.readouterr().out
        assert "dev" in out
        assert "postgres@localhost:5432/app_dev" in out

    def test_missing_config(self, capsys):
        assert main(["profiles"]) == 1
        assert "Database config not found" in capsys.readouterr().out
