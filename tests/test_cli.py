"""Tests for the command line interface."""

import asyncio
import json
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from typer.testing import CliRunner

from health_context import __version__
from health_context import cli
from health_context.cli import app
from health_context.core.config import settings
from health_context.core.database import create_engine, create_session_maker
from health_context.models.base import Base
from health_context.services.refinement import GenerationQueryRefiner
from tests.fixtures.health_seed import seed_daily_metrics

runner = CliRunner()


def seed_database(url: str) -> None:
    """Create the tables and three days of rollups ending today (local time)."""

    async def run() -> None:
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            today = datetime.now().astimezone().date()
            await seed_daily_metrics(session, "user-1", today, days=3)
        await engine.dispose()

    asyncio.run(run())


@pytest.fixture
def sqlite_settings(tmp_path, monkeypatch):
    """Point the CLI at a seeded SQLite file with generation disabled."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    seed_database(url)
    monkeypatch.setattr(settings, "database_url", url)
    monkeypatch.setattr(settings, "google_api_key", None)
    # Keep the process-wide logging config untouched by CliRunner's streams
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    return settings


class TestCli:
    """Tests for commands that need no database."""

    def test_version(self):
        """version prints the package version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert f"health-context v{__version__}" in result.output

    def test_analyze(self):
        """analyze prints the analysis as JSON."""
        result = runner.invoke(app, ["analyze", "How many steps did I take yesterday?"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["needs_health_data"] is True
        assert payload["metrics"] == ["steps"]
        assert payload["time_range"]["description"] == "yesterday"
        assert payload["raw_query"] == "How many steps did I take yesterday?"

    def test_analyze_small_talk(self):
        """Small talk yields no window and no metrics."""
        result = runner.invoke(app, ["analyze", "Thanks!"])

        payload = json.loads(result.output)
        assert payload["needs_health_data"] is False
        assert payload["time_range"] is None


class TestDatabaseCommands:
    """Tests for commands that read the configured database."""

    def test_context(self, sqlite_settings):
        """context prints the assembled block and its metadata record."""
        result = runner.invoke(
            app, ["context", "user-1", "How many steps did I take yesterday?", "--no-refine"]
        )

        assert result.exit_code == 0, result.output
        assert "Health Data (1 days):" in result.output
        assert '"dataRetrieved": true' in result.output
        assert '"daily_metrics"' in result.output

    def test_context_small_talk(self, sqlite_settings):
        """Queries that need no data print the placeholder."""
        result = runner.invoke(app, ["context", "user-1", "Thanks!", "--no-refine"])

        assert result.exit_code == 0, result.output
        assert "(no health context needed)" in result.output
        assert '"dataRetrieved": false' in result.output

    def test_ask_without_credentials(self, sqlite_settings):
        """ask exits non-zero when the generation service is not configured."""
        result = runner.invoke(app, ["ask", "user-1", "How many steps did I take yesterday?"])

        assert result.exit_code == 1
        assert "GOOGLE_API_KEY" in result.output


class TestBuildRetriever:
    """Tests for refinement wiring."""

    @pytest.fixture
    def session_maker(self, tmp_path):
        return create_session_maker(create_engine(f"sqlite+aiosqlite:///{tmp_path / 'w.db'}"))

    def test_refiner_wired_with_credentials(self, session_maker, monkeypatch):
        """Credentials and --refine give a generation-backed refiner."""
        monkeypatch.setattr(settings, "google_api_key", "test-key")
        monkeypatch.setattr(settings, "refinement_enabled", True)

        retriever = cli._build_retriever(session_maker, refine=True)

        assert isinstance(retriever.refiner, GenerationQueryRefiner)

    @pytest.mark.parametrize(
        ("api_key", "enabled", "refine"),
        [(None, True, True), ("test-key", False, True), ("test-key", True, False)],
    )
    def test_no_refiner(self, session_maker, monkeypatch, api_key, enabled, refine):
        """Missing credentials, disabled setting or --no-refine skip refinement."""
        monkeypatch.setattr(settings, "google_api_key", api_key)
        monkeypatch.setattr(settings, "refinement_enabled", enabled)

        retriever = cli._build_retriever(session_maker, refine=refine)

        assert retriever.refiner is None
