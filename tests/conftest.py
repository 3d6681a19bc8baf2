"""
Test configuration and fixtures for the accessibility scanner API.

DATABASE_URL is pointed at a throwaway sqlite file before the app (and its
settings) are imported, so tests never touch a real database.
"""

import os
import tempfile
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

from dotenv import load_dotenv

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker

load_dotenv()

test_db_url = os.getenv("TEST_DATABASE_URL")
if test_db_url:
    os.environ["DATABASE_URL"] = test_db_url
else:
    test_db_path = tempfile.mktemp(suffix=".db")
    os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"

os.environ.setdefault("BROWSER_POOL_ENABLED", "false")


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Test client with the app lifespan running (tables created, workers started).
    """
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def fake_controller():
    """Stands in for the background controller so route tests never launch a browser."""
    controller = MagicMock()
    controller.submit = AsyncMock(side_effect=lambda job: job.scan_id)
    controller.in_flight = 0
    controller.queue_depth = 0
    return controller


@pytest.fixture
def scan_client(client, test_app, fake_controller):
    """Client whose scan and batch routes submit to fake_controller."""
    from app.features.scan.dependencies.scan import get_job_controller

    test_app.dependency_overrides[get_job_controller] = lambda: fake_controller
    yield client
    test_app.dependency_overrides.pop(get_job_controller, None)


@pytest.fixture
async def store(tmp_path):
    """SqlScanStore over its own sqlite file."""
    from app.features.scan.services.persistence.scan_store import SqlScanStore
    from app.platform.db.session import build_engine, init_db

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'scans.db'}")
    await init_db(engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    yield SqlScanStore(session_factory)

    await engine.dispose()
