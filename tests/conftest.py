"""Pytest configuration and fixtures for Fundspace tests."""

import asyncio
import sys
from pathlib import Path
import pytest
import structlog
from fastapi.testclient import TestClient

# Ensure the src directory is on sys.path for imports like `import fundspace`
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fundspace.core.config import Settings
from fundspace.core.events import EventBus
from fundspace.web.app import create_app


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite://",
        "state_db_path": ":memory:",
        "storage_root": str(tmp_path / "buckets"),
        "auth_settle_delay": 0,
        "structured_logging": False,
        "log_level": "WARNING",
        "jwt_secret_key": "test-secret",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    """Isolated settings: in-memory databases and a temporary bucket root."""
    return make_settings(tmp_path)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def client(tmp_path):
    """FastAPI test client over a freshly seeded in-memory database."""
    app = create_app(make_settings(tmp_path, seed_on_startup=True))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def empty_client(tmp_path):
    """FastAPI test client with an empty database."""
    app = create_app(make_settings(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def cli_runner():
    """CLI test runner fixture."""
    from typer.testing import CliRunner
    return CliRunner()


@pytest.fixture
def run_db(settings):
    """Run ``work(db)`` against a fresh in-memory database and return its result."""
    from fundspace.core.database_manager import DatabaseManager

    def runner(work, seed=False):
        async def scenario():
            db = DatabaseManager(settings)
            await db.create_all()
            try:
                if seed:
                    from fundspace.data.seed import seed_database
                    await seed_database(db)
                return await work(db)
            finally:
                await db.shutdown()

        return asyncio.run(scenario())

    return runner


@pytest.fixture(autouse=True)
def reset_structlog():
    """Leave no logger configuration bound to a closed CLI runner stream."""
    yield
    structlog.reset_defaults()
