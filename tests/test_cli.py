"""
Tests for the Paranoia Toolkit CLI.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from sqlalchemy import Engine, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from paranoia_toolkit.cli import cli
from paranoia_toolkit.soft_delete import SoftDeleteMixin


class Base(DeclarativeBase):
    pass


class Gadget(Base, SoftDeleteMixin):
    """Soft-deletable model addressed by the CLI as ``module:Gadget``."""

    __tablename__ = "gadgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))


class Widget(Base):
    """Model without soft delete."""

    __tablename__ = "widgets"

    id: Mapped[int] = mapped_column(primary_key=True)


GADGET = f"{__name__}:Gadget"


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def no_database_env(monkeypatch):
    """Keep the caller's database setting out of the tests."""
    monkeypatch.delenv("PARANOIA_DATABASE_URL", raising=False)


@pytest.fixture
def database_url(tmp_path):
    """Create a SQLite file with one active and two soft-deleted gadgets."""
    url = f"sqlite:///{tmp_path / 'gadgets.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        gadgets = [Gadget(name=name) for name in ("Lamp", "Kettle", "Toaster")]
        session.add_all(gadgets)
        session.commit()
        gadgets[1].destroy()
        gadgets[2].destroy()
        session.commit()

    engine.dispose()
    return url


def gadget_names(url, include_deleted=False):
    """Names of the gadgets a fresh session sees."""
    engine = create_engine(url)
    with Session(engine) as session:
        statement = Gadget.with_deleted() if include_deleted else select(Gadget)
        names = sorted(gadget.name for gadget in session.scalars(statement))
    engine.dispose()
    return names


def line_with(output, label):
    return next(line for line in output.splitlines() if label in line)


@pytest.mark.cli
class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self, runner):
        """Test CLI help command."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Paranoia Toolkit" in result.output
        assert "list-deleted" in result.output

    def test_cli_version(self, runner):
        """Test CLI version command."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_cli_no_command(self, runner):
        """Test CLI with no command shows info."""
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "Paranoia Toolkit" in result.output


@pytest.mark.cli
class TestConfigCommands:
    """Test configuration-related commands."""

    def test_config_show(self, runner):
        """Test config show command."""
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "Paranoia Configuration" in result.output
        assert "default_column" in result.output

    def test_config_show_json(self, runner):
        """Test config show with JSON format."""
        result = runner.invoke(cli, ["config", "show", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["default_column"] == "deleted_at"
        assert data["database_url"] is None

    def test_config_show_yaml(self, runner):
        """Test config show with YAML format."""
        result = runner.invoke(cli, ["config", "show", "--format", "yaml"])
        assert result.exit_code == 0
        assert "timezone: UTC" in result.output


@pytest.mark.cli
class TestModelLoading:
    """Test resolving MODEL_PATH arguments."""

    def test_missing_colon(self, runner, database_url):
        """Model paths need a module and a class name."""
        result = runner.invoke(
            cli, ["status", "Gadget", "--database-url", database_url]
        )
        assert result.exit_code == 2
        assert "Expected 'module:ClassName'" in result.output

    def test_unknown_module(self, runner, database_url):
        """Unimportable modules are reported."""
        result = runner.invoke(
            cli, ["status", "no_such_module:Gadget", "--database-url", database_url]
        )
        assert result.exit_code == 2
        assert "Cannot import module" in result.output

    def test_unknown_class(self, runner, database_url):
        """Missing classes are reported."""
        result = runner.invoke(
            cli, ["status", f"{__name__}:Missing", "--database-url", database_url]
        )
        assert result.exit_code == 2
        assert "'Missing' not found" in result.output

    def test_model_not_enrolled(self, runner, database_url):
        """Models without soft delete are refused."""
        result = runner.invoke(
            cli, ["status", f"{__name__}:Widget", "--database-url", database_url]
        )
        assert result.exit_code == 2
        assert "not enrolled in soft delete" in result.output

    def test_no_database(self, runner):
        """A database URL is required."""
        result = runner.invoke(cli, ["status", GADGET])
        assert result.exit_code == 1
        assert "No database configured" in result.output

    def test_non_integer_ids(self, runner, database_url):
        """IDs are converted to the primary key type."""
        result = runner.invoke(
            cli, ["restore", GADGET, "two", "--database-url", database_url]
        )
        assert result.exit_code == 2
        assert "IDs must be integers" in result.output


@pytest.mark.cli
class TestInspectCommands:
    """Test status and list-deleted."""

    def test_status(self, runner, database_url):
        """Counts are split by state."""
        result = runner.invoke(cli, ["status", GADGET, "--database-url", database_url])
        assert result.exit_code == 0
        assert "1" in line_with(result.output, "Active")
        assert "2" in line_with(result.output, "Soft-deleted")
        assert "3" in line_with(result.output, "Total")

    def test_status_from_environment(self, runner, database_url):
        """The database URL can come from PARANOIA_DATABASE_URL."""
        result = runner.invoke(
            cli, ["status", GADGET], env={"PARANOIA_DATABASE_URL": database_url}
        )
        assert result.exit_code == 0
        assert "Gadget rows" in result.output

    def test_list_deleted(self, runner, database_url):
        """Only soft-deleted rows are listed."""
        result = runner.invoke(
            cli, ["list-deleted", GADGET, "--database-url", database_url]
        )
        assert result.exit_code == 0
        assert "Kettle" in result.output
        assert "Toaster" in result.output
        assert "Lamp" not in result.output

    def test_list_deleted_json(self, runner, database_url):
        """JSON output carries the column values."""
        result = runner.invoke(
            cli,
            [
                "list-deleted",
                GADGET,
                "--database-url",
                database_url,
                "--format",
                "json",
                "--limit",
                "1",
            ],
        )
        assert result.exit_code == 0
        rows = json.loads(result.output)
        assert len(rows) == 1
        assert rows[0]["name"] in ("Kettle", "Toaster")
        assert rows[0]["deleted_at"] != "None"

    def test_list_deleted_empty(self, runner, database_url):
        """An empty result is reported."""
        runner.invoke(
            cli, ["restore", GADGET, "2", "3", "--database-url", database_url]
        )

        result = runner.invoke(
            cli, ["list-deleted", GADGET, "--database-url", database_url]
        )
        assert result.exit_code == 0
        assert "No soft-deleted Gadget rows" in result.output


@pytest.mark.cli
class TestRestoreCommand:
    """Test the restore command."""

    def test_restore(self, runner, database_url):
        """Restored rows are committed."""
        result = runner.invoke(
            cli, ["restore", GADGET, "2", "3", "--database-url", database_url]
        )
        assert result.exit_code == 0
        assert "Restored 2 Gadget row(s)" in result.output
        assert gadget_names(database_url) == ["Kettle", "Lamp", "Toaster"]

    def test_restore_failure_commits_nothing(self, runner, database_url):
        """A failing ID leaves every row as it was."""
        result = runner.invoke(
            cli, ["restore", GADGET, "2", "1", "--database-url", database_url]
        )
        assert result.exit_code == 1
        assert "Deleted Gadget with ID 1 not found" in result.output
        assert gadget_names(database_url) == ["Lamp"]


@pytest.mark.cli
class TestPurgeCommand:
    """Test the purge command."""

    def test_purge(self, runner, database_url):
        """Purged rows are removed from storage."""
        result = runner.invoke(
            cli, ["purge", GADGET, "2", "--yes", "--database-url", database_url]
        )
        assert result.exit_code == 0
        assert "Purged 1 Gadget row(s)" in result.output
        assert gadget_names(database_url, include_deleted=True) == ["Lamp", "Toaster"]

    def test_purge_confirmation(self, runner, database_url):
        """Without --yes the user is asked first."""
        result = runner.invoke(
            cli, ["purge", GADGET, "3", "--database-url", database_url], input="y\n"
        )
        assert result.exit_code == 0
        assert "Permanently remove 1 Gadget row(s)?" in result.output
        assert gadget_names(database_url, include_deleted=True) == ["Kettle", "Lamp"]

    def test_purge_declined(self, runner, database_url):
        """Declining the prompt keeps the rows."""
        result = runner.invoke(
            cli, ["purge", GADGET, "3", "--database-url", database_url], input="n\n"
        )
        assert result.exit_code == 1
        assert gadget_names(database_url, include_deleted=True) == [
            "Kettle",
            "Lamp",
            "Toaster",
        ]

    def test_purge_active_row(self, runner, database_url):
        """Active rows cannot be purged."""
        result = runner.invoke(
            cli, ["purge", GADGET, "1", "--yes", "--database-url", database_url]
        )
        assert result.exit_code == 1
        assert "not found" in result.output
        assert gadget_names(database_url) == ["Lamp"]


@pytest.mark.cli
class TestSessionHandling:
    """Test the database resources opened by commands."""

    def test_engine_disposed(self, runner, database_url):
        """Each command disposes the engine it created."""
        with patch.object(Engine, "dispose", autospec=True) as dispose:
            result = runner.invoke(
                cli, ["status", GADGET, "--database-url", database_url]
            )

        assert result.exit_code == 0
        dispose.assert_called_once()

    def test_engine_disposed_on_failure(self, runner, database_url):
        """The engine is disposed when a command fails."""
        with patch.object(Engine, "dispose", autospec=True) as dispose:
            result = runner.invoke(
                cli, ["restore", GADGET, "1", "--database-url", database_url]
            )

        assert result.exit_code == 1
        dispose.assert_called_once()
