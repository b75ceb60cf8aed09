import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./reelstory-test.db")
os.environ.setdefault("DISABLE_FIREBASE", "true")
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from reelstory.api.deps import get_auth_client, get_storage_backend
from reelstory.database import Base, get_db
from reelstory.main import app
from reelstory.models import Drama
from reelstory.services.storage import MemoryStorage
from reelstory.services.supabase import AuthUser, SupabaseAuthError

ALICE = AuthUser(id="11111111-aaaa-4aaa-8aaa-111111111111", email="alice@example.com")
BOB = AuthUser(id="22222222-bbbb-4bbb-8bbb-222222222222", email="bob@example.com")

TOKENS = {
    "alice-token": ALICE,
    "bob-token": BOB,
}


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class FakeAuthClient:
    """Resolves the fixed test tokens; ``fail`` simulates an unreachable auth service."""

    def __init__(self):
        self.fail = False

    async def get_user(self, access_token: str):
        if self.fail:
            raise SupabaseAuthError("connection refused")
        return TOKENS.get(access_token)

    async def close(self):
        pass


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reelstory.db'}",
        connect_args={"timeout": 30},
    )

    # Real transactions on SQLite: writers queue at BEGIN like row locks would on PostgreSQL
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def storage():
    return MemoryStorage(base_url="https://storage.test")


@pytest.fixture
def auth_client():
    return FakeAuthClient()


@pytest.fixture
async def client(session_factory, storage, auth_client):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    app.dependency_overrides[get_storage_backend] = lambda: storage

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_drama(session_factory):
    async def _make(title: str = "Crash Landing on You", description: str = "") -> Drama:
        async with session_factory() as session:
            drama = Drama(title=title, description=description)
            session.add(drama)
            await session.commit()
            return drama

    return _make


@pytest.fixture
async def admin_headers(client):
    """Alice becomes the bootstrap admin."""
    resp = await client.post("/api/admin/check-admin", headers=bearer("alice-token"))
    assert resp.status_code == 200
    return bearer("alice-token")
