"""
Shared fixtures: an in-memory database, an HTTP client bound to the app,
and a ``make_user`` factory returning a logged-in account.

- The suite runs against SQLite through aiosqlite, so no Postgres server
  is needed.
- One StaticPool connection backs every session; an in-memory SQLite
  database vanishes with the connection that created it.
- ``get_db`` is overridden so requests use the test session factory.
- The schema is rebuilt around every test.
- Environment is set before the app is imported: a fixed JWT secret, the
  minimum bcrypt cost so hashing does not dominate the run, and a SQLite
  URL so the production engine never needs a Postgres driver.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from social_api.database import Base, get_db  # noqa: E402
from social_api.main import app  # noqa: E402
from social_api.middleware import install_query_counter  # noqa: E402

# ---------------------------------------------------------------------------
# Engine shared by every test
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# X-Query-Count must work against the test engine too.
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Route get_db to the test engine
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Fresh schema per test."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Session for seeding rows or asserting on them without going through HTTP."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_user(async_client: AsyncClient):
    """
    Factory that registers a user, logs them in, and returns
    ``{"id", "username", "token", "headers"}``.
    """

    async def _make(username: str, password: str = "secret-pw", name: str | None = None) -> dict:
        resp = await async_client.post("/users/register", json={
            "name": name or username.title(),
            "username": username,
            "password": password,
        })
        assert resp.status_code == 200, resp.text
        user_id = resp.json()["data"]["id"]

        resp = await async_client.post("/users/login", json={
            "username": username,
            "password": password,
        })
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["token"]
        return {
            "id": user_id,
            "username": username,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make
