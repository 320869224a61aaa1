"""
Tests for the command line interface

Tests:
- TableSelector parsing and validation
- Option validation before any connection is made
- Run record export and listing
- Commands wired to fakes through monkeypatch
"""

import pytest
from click.testing import CliRunner

import main
from config import ConfigurationError
from src.cli.table_selector import TableSelector
from src.exporter.json_exporter import JsonExporter
from src.schema.models import MIGRATION_TABLES, MigrationRecord, TableResult


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def no_connections(monkeypatch):
    """Fail the test if a command tries to connect"""
    def refuse():
        raise AssertionError("database connection attempted")

    monkeypatch.setattr(main, "source_database", refuse)
    monkeypatch.setattr(main, "target_database", refuse)


# ============================================================================
# TEST: TableSelector
# ============================================================================


class TestTableSelector:
    """Tests for TableSelector"""

    def test_default_is_all_tables(self):
        assert TableSelector(None).requested == list(MIGRATION_TABLES)

    def test_split_and_order(self):
        selector = TableSelector(" webhooks, leads ,organizations")

        assert selector.requested == ["webhooks", "leads", "organizations"]
        assert selector.ordered() == ["organizations", "leads", "webhooks"]

    def test_invalid_names(self):
        assert TableSelector("leads,contacts,all").invalid_tables() == ["contacts"]

    def test_all_keyword(self):
        assert TableSelector("all").ordered() == list(MIGRATION_TABLES)


# ============================================================================
# TEST: JsonExporter
# ============================================================================


class TestJsonExporter:
    """Tests for run record export"""

    def test_export_and_list(self, tmp_path):
        exporter = JsonExporter(tmp_path)
        record = MigrationRecord("org000000001", "company-1", ["organizations"], company_name="ACME")
        record.results.append(TableResult("organizations", source_rows=1, migrated=1))
        record.finish("completed")

        path = exporter.export(record)

        assert path == tmp_path / "migrations" / "org000000001.json"
        records = exporter.list_records()
        assert len(records) == 1
        assert records[0]["status"] == "completed"
        assert records[0]["results"][0]["migrated"] == 1

    def test_list_without_directory(self, tmp_path):
        assert JsonExporter(tmp_path / "missing").list_records() == []


# ============================================================================
# TEST: Commands
# ============================================================================


class TestMigrateCommand:
    """Tests for the migrate command"""

    def test_source_company_required(self, runner, no_connections):
        result = runner.invoke(main.cli, ["migrate"])

        assert result.exit_code == 2
        assert "--source-company" in result.output

    def test_invalid_tables_rejected(self, runner, no_connections):
        result = runner.invoke(main.cli, ["migrate", "--source-company=abc", "--tables=leads,contacts"])

        assert result.exit_code == 2
        assert "Invalid tables: contacts" in result.output

    def test_missing_database_url(self, runner, monkeypatch):
        def no_url():
            raise ConfigurationError("DATABASE_URL environment variable is required")

        monkeypatch.setattr(main, "target_database", no_url)

        result = runner.invoke(main.cli, ["migrate", "--source-company=abc"])

        assert result.exit_code == 1
        assert "DATABASE_URL" in result.output

    def test_runs_migration(self, runner, monkeypatch, fake_db_factory):
        captured = {}

        class FakeRunner:
            def __init__(self, source_db, target_db, **kwargs):
                captured["dbs"] = (source_db, target_db)

            def run(self, options):
                captured["options"] = options
                record = MigrationRecord("org000000001", options.source_company_id, options.tables)
                record.finish("dry_run")
                return record

        source, target = fake_db_factory(), fake_db_factory()
        monkeypatch.setattr(main, "source_database", lambda: source)
        monkeypatch.setattr(main, "target_database", lambda: target)
        monkeypatch.setattr(main, "SelectiveMigrationRunner", FakeRunner)

        result = runner.invoke(main.cli, ["migrate", "--source-company=abc", "--tables=segments", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert captured["options"].tables == ["segments"]
        assert captured["options"].dry_run is True
        assert source.closed and target.closed


class TestOtherCommands:
    """Tests for the auxiliary commands"""

    def test_list_migrations_empty(self, runner, monkeypatch, tmp_path):
        monkeypatch.setattr(main.app_config.migration, "output_dir", str(tmp_path))

        result = runner.invoke(main.cli, ["list-migrations"])

        assert result.exit_code == 0
        assert "No saved migrations found" in result.output

    def test_list_migrations(self, runner, monkeypatch, tmp_path):
        monkeypatch.setattr(main.app_config.migration, "output_dir", str(tmp_path))
        record = MigrationRecord("org000000001", "company-1", ["leads"], company_name="ACME")
        record.finish("completed")
        JsonExporter(tmp_path).export(record)

        result = runner.invoke(main.cli, ["list-migrations"])

        assert "org000000001" in result.output
        assert "[completed]" in result.output

    def test_list_backups(self, runner, monkeypatch, tmp_path):
        (tmp_path / "laiki-pg15.dump").write_bytes(b"PGDMP")
        monkeypatch.setattr(main.app_config.analysis, "backup_dir", str(tmp_path))

        result = runner.invoke(main.cli, ["list-backups"])

        assert result.exit_code == 0
        assert "laiki-pg15.dump" in result.output

    def test_list_backups_missing_directory(self, runner, monkeypatch, tmp_path):
        monkeypatch.setattr(main.app_config.analysis, "backup_dir", str(tmp_path / "nope"))

        result = runner.invoke(main.cli, ["list-backups"])

        assert result.exit_code == 1

    def test_create_memberships_requires_profile(self, runner, monkeypatch, no_connections):
        monkeypatch.setattr(main.app_config.membership, "profile_id", "")

        result = runner.invoke(main.cli, ["create-memberships"])

        assert result.exit_code == 1
        assert "MIGRATION_ADMIN_PROFILE_ID" in result.output

    def test_create_memberships(self, runner, monkeypatch, fake_db_factory):
        db = fake_db_factory({
            "FROM profiles": [{"id": "p1", "email": ""}],
            "FROM organizations": [{"id": "org-a", "name": "Alpha"}],
        })
        monkeypatch.setattr(main.app_config.membership, "profile_id", "p1")
        monkeypatch.setattr(main.app_config.membership, "email", "")
        monkeypatch.setattr(main, "target_database", lambda: db)

        result = runner.invoke(main.cli, ["create-memberships"])

        assert result.exit_code == 0, result.output
        assert "Created: 1" in result.output
        assert db.closed


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
