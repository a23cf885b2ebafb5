"""
Switchboard — Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the whole suite.
How:   pytest auto-discovers this file.

Fixtures:
    ├── build_request:  Factory for bare Starlette Request objects
    ├── test_settings:  Settings pointing at a throwaway SQLite file
    ├── registry:       Fresh SchemaRegistry per test
    ├── database:       Connected Database handle (real aiosqlite engine)
    ├── db_session:     AsyncSession from database.session()
    ├── make_client:    Factory for httpx AsyncClients against create_app()
    └── test_client:    AsyncClient against the default app
"""

import os

# Keep tests away from any real database before switchboard.config loads.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./switchboard_test.db"
os.environ["LOG_LEVEL"] = "WARNING"

from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from switchboard.config import Settings
from switchboard.database import connect
from switchboard.main import create_app
from switchboard.registry import SchemaRegistry


@pytest.fixture
def build_request():
    """
    Builds a Starlette Request for unit-testing the dispatcher without HTTP.

    Usage:
        request = build_request("GET", "/hello", query="a=1")
    """

    def _build(method: str = "GET", path: str = "/", query: str = "") -> Request:
        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "root_path": "",
            "scheme": "http",
            "query_string": query.encode("latin-1"),
            "headers": [],
            "server": ("testserver", 80),
        }
        return Request(scope)

    return _build


@pytest.fixture
def test_settings(tmp_path):
    """Settings bound to a SQLite file that lives only for this test."""
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'switchboard.db'}")


@pytest.fixture
def registry():
    return SchemaRegistry()


@pytest_asyncio.fixture
async def database(test_settings, registry):
    db = await connect(test_settings, registry=registry)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def make_client():
    """
    Factory for HTTP clients talking to create_app(settings) in-process.

    Usage:
        async with make_client(Settings(unmatched_policy="error")) as client:
            response = await client.get("/nowhere")
    """

    @asynccontextmanager
    async def _make(config: Settings = None):
        app = create_app(config or Settings())
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    return _make


@pytest_asyncio.fixture
async def test_client(make_client):
    async with make_client() as client:
        yield client
