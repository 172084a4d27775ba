"""
Tests for the Typer command line interface.
"""

import pytest
from typer.testing import CliRunner

from tenderwatch import __version__
from tenderwatch.cli.main import app
from tenderwatch.persistence.db import dispose_engines

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run each command from an empty project directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    yield tmp_path
    dispose_engines()


class TestCliBasics:
    """Test top-level commands."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_creates_config_and_database(self, workdir):
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        assert (workdir / "configs" / "app.yaml").exists()
        assert (workdir / "data" / "tenderwatch.db").exists()

    def test_status_on_empty_store(self, workdir):
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0, result.output
        assert "No tenders stored yet" in result.output


class TestSyncCommands:
    """Test the sync command group."""

    def test_unknown_source_rejected(self, workdir):
        result = runner.invoke(app, ["sync", "run", "--source", "Nowhere"])
        assert result.exit_code == 1


class TestEnrichCommands:
    """Test the enrich command group."""

    def test_missing_tender(self, workdir):
        result = runner.invoke(app, ["enrich", "tender", "999"])
        assert result.exit_code == 1
