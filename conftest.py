"""
Shared fixtures for the LiftLog API tests.
Each test gets a fresh SQLite file database via aiosqlite.
"""
import os
import tempfile

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override env BEFORE importing the app so it uses a throwaway SQLite file
_tmpdir = tempfile.mkdtemp(prefix="liftlog-test-")
os.environ.pop("CLOUD_SQL_CONNECTION_NAME", None)
os.environ["LIFTLOG_DB"] = os.path.join(_tmpdir, "liftlog-test.db")
os.environ["RATE_LIMIT_REQUESTS"] = "10000"  # effectively disable for tests

from liftlog.app import _rate_limit_store, app  # noqa: E402
from liftlog.db import Base, engine  # noqa: E402

transport = ASGITransport(app=app)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create a fresh database for each test."""
    _rate_limit_store.clear()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # pooled aiosqlite connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
