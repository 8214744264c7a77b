"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Signing secrets are put in the environment BEFORE inkwell is imported,
   because create_app() builds the TokenCodec at import time and refuses
   to start without them.
2. Each test gets its own SQLite in-memory engine (StaticPool keeps the
   single connection alive) with the schema created from the models.
3. get_db is overridden to hand every request its own session from that
   engine, like the real per-request sessions.
"""

import os

os.environ.setdefault("INKWELL_ACCESS_TOKEN_SECRET", "test-access-secret-do-not-use")
os.environ.setdefault("INKWELL_REFRESH_TOKEN_SECRET", "test-refresh-secret-do-not-use")
os.environ.setdefault("INKWELL_BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from inkwell.client.session import SessionClient  # noqa: E402
from inkwell.db.engine import get_db  # noqa: E402
from inkwell.db.models import Base  # noqa: E402
from inkwell.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"
BASE_URL = "http://test"
API_URL = f"{BASE_URL}/api/v1"


@pytest_asyncio.fixture()
async def session_factory():
    """Session factory bound to a throwaway in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client against the real app, with the test database.

    Learn: Nothing auth-related is overridden — every test goes through
    the real TokenCodec, cookie handling and bearer gate.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=BASE_URL) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def session_client(client):
    """SessionClient talking to the same app (shares the DB override)."""
    async with SessionClient(API_URL, transport=ASGITransport(app=app)) as sc:
        yield sc


@pytest.fixture()
def codec():
    return app.state.token_codec
