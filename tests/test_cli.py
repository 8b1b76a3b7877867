"""Tests for the Fundspace command-line interface."""

import asyncio

import pytest

from fundspace.cli import app
from fundspace.core.config import Settings
from fundspace.core.database_manager import DatabaseManager
from fundspace.repositories.profile_repository import AccountRepository


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway database file."""
    monkeypatch.setenv("FUNDSPACE_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("FUNDSPACE_STRUCTURED_LOGGING", "false")
    monkeypatch.setenv("FUNDSPACE_LOG_LEVEL", "WARNING")
    return tmp_path


def test_version(cli_runner):
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "Fundspace v1.0.0" in result.output


def test_funding_parse_range(cli_runner):
    result = cli_runner.invoke(app, ["funding", "parse", "$500K - $1M"])
    assert result.exit_code == 0
    assert "min=$500,000 max=$1M currency=USD" in result.output


def test_funding_parse_unknown(cli_runner):
    result = cli_runner.invoke(app, ["funding", "parse", "Varies"])
    assert result.exit_code == 0
    assert "amount unknown" in result.output


def test_taxonomy_match(cli_runner):
    result = cli_runner.invoke(app, ["taxonomy", "match", "nonprofit", "nonprofit.501c3"])
    assert result.exit_code == 0
    assert "matches nonprofit" in result.output


def test_taxonomy_mismatch_exits_nonzero(cli_runner):
    result = cli_runner.invoke(app, ["taxonomy", "match", "nonprofit.501c3", "nonprofit"])
    assert result.exit_code == 1
    assert "does not match" in result.output


def test_init_seed_and_list(cli_runner, cli_env):
    assert cli_runner.invoke(app, ["db", "init"]).exit_code == 0
    assert (cli_env / "cli.db").exists()

    seeded = cli_runner.invoke(app, ["db", "seed"])
    assert seeded.exit_code == 0
    assert "grants: 7" in seeded.output

    again = cli_runner.invoke(app, ["db", "seed"])
    assert "already contains sample data" in again.output

    listed = cli_runner.invoke(app, ["grants", "list", "--status", "Closed"])
    assert listed.exit_code == 0
    assert "(2 grants, $0 available)" in listed.output

    paged = cli_runner.invoke(app, ["grants", "list", "--page-size", "3", "--page", "3"])
    assert "Page 3 of 3 (7 grants, $1.4M available)" in paged.output


def test_news_cleanup(cli_runner, cli_env):
    cli_runner.invoke(app, ["db", "seed"])
    result = cli_runner.invoke(app, ["news", "cleanup", "--days", "3"])
    assert result.exit_code == 0
    assert "Removed 1 article(s)" in result.output


def test_init_drop_existing_empties_the_database(cli_runner, cli_env):
    cli_runner.invoke(app, ["db", "seed"])
    assert cli_runner.invoke(app, ["db", "init", "--drop-existing"]).exit_code == 0
    listed = cli_runner.invoke(app, ["grants", "list"])
    assert "(0 grants, $0 available)" in listed.output


def test_confirm_unknown_account(cli_runner, cli_env):
    cli_runner.invoke(app, ["db", "init"])
    result = cli_runner.invoke(app, ["accounts", "confirm", "nobody@example.org"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_confirm_account(cli_runner, cli_env):
    async def register():
        db = DatabaseManager(Settings())
        await db.create_all()
        try:
            async with db.transaction() as session:
                await AccountRepository(session).create_account("ada@example.org", "hashed")
        finally:
            await db.shutdown()

    async def confirmed_at():
        db = DatabaseManager(Settings())
        try:
            async with db.transaction() as session:
                account = await AccountRepository(session).get_by_email("ada@example.org")
                return account.email_confirmed_at
        finally:
            await db.shutdown()

    asyncio.run(register())
    result = cli_runner.invoke(app, ["accounts", "confirm", "ADA@example.org"])
    assert result.exit_code == 0
    assert asyncio.run(confirmed_at()) is not None
