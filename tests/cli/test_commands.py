"""
Tests for the cuyfarm CLI app and its sub-commands.
"""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from cuyfarm.cli.app import app
from cuyfarm.cli.utils import console

runner = CliRunner()


@pytest.fixture()
def database(tmp_path, monkeypatch):
    """Point the CLI settings at a fresh SQLite file with the schema created."""
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("CUYFARM_DATABASE_URL", url)
    monkeypatch.setenv("CUYFARM_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setattr(console, "width", 200)
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0, result.output
    return url


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "cuyfarm" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("cuyfarm ")

    @pytest.mark.parametrize("group", ["db", "serve", "alerts", "notifications", "reports", "scheduler"])
    def test_subcommand_help(self, group):
        assert runner.invoke(app, [group, "--help"]).exit_code == 0


class TestDb:
    def test_init_seeds_channels(self, database):
        result = runner.invoke(app, ["db", "init", "--json"])
        assert result.exit_code == 0
        assert '"created": []' in result.output

    def test_tables(self, database):
        result = runner.invoke(app, ["db", "tables"])
        assert result.exit_code == 0
        assert "cuyes" in result.output
        assert "notification_channels" in result.output


class TestAlerts:
    def test_generate_on_empty_farm(self, database):
        result = runner.invoke(app, ["alerts", "generate"])
        assert result.exit_code == 0
        assert "0 new alert(s)" in result.output

    def test_list_empty(self, database):
        result = runner.invoke(app, ["alerts", "list"])
        assert result.exit_code == 0
        assert "No items." in result.output

    def test_bad_date(self, database):
        assert runner.invoke(app, ["alerts", "generate", "--date", "mañana"]).exit_code != 0


class TestNotifications:
    def test_channels(self, database):
        result = runner.invoke(app, ["notifications", "channels", "--enabled", "--json"])
        assert result.exit_code == 0
        assert "in_app_default" in result.output

    def test_retry(self, database):
        result = runner.invoke(app, ["notifications", "retry", "--json"])
        assert result.exit_code == 0
        assert '"retried": 0' in result.output


class TestReports:
    def test_export_csv(self, database, tmp_path):
        result = runner.invoke(app, ["reports", "export", "inventory", "--format", "csv", "--user", "ana"])
        assert result.exit_code == 0, result.output
        assert "completed" in result.output
        assert list((tmp_path / "exports" / "ana").glob("*.csv"))

    def test_export_dry_run_generates_nothing(self, database, tmp_path):
        result = runner.invoke(app, ["reports", "export", "inventory", "--format", "csv", "--dry-run", "--json"])
        assert result.exit_code == 0, result.output
        assert '"dry_run": true' in result.output
        assert not list(tmp_path.glob("exports/**/*.csv"))

    def test_unknown_template_fails(self, database):
        result = runner.invoke(app, ["reports", "export", "clima"])
        assert result.exit_code == 1
        assert "VALIDATION_FAILED" in result.output

    def test_cleanup(self, database):
        result = runner.invoke(app, ["reports", "cleanup", "--timeout", "10"])
        assert result.exit_code == 0
        assert "Timed out: 0 job(s)" in result.output


class TestScheduler:
    def test_jobs(self, database):
        result = runner.invoke(app, ["scheduler", "jobs"])
        assert result.exit_code == 0
        assert "generate_alerts" in result.output

    def test_run(self, database):
        result = runner.invoke(app, ["scheduler", "run", "alert_stats"])
        assert result.exit_code == 0
        assert "completed" in result.output

    def test_run_unknown(self, database):
        result = runner.invoke(app, ["scheduler", "run", "nope"])
        assert result.exit_code == 1
