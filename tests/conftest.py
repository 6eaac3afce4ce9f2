import os

# Settings are read at import time; point them at an in-memory database first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from todo_api.database import Base, get_db
from todo_api.dependencies import get_blob_store
from todo_api.main import app
from todo_api.models import attachment, tasks, user  # noqa: F401
from todo_api.services import users as user_service
from todo_api.storage.blob_store import LocalBlobStore
from todo_api.utils.security import create_access_token


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


async def _make_user(db, username):
    created = await user_service.create_user(
        db, username=username, email=f"{username}@mail.org", password="s3cret-pass"
    )
    await db.commit()
    return created


@pytest.fixture
async def alice(db):
    return await _make_user(db, "alice")


@pytest.fixture
async def bob(db):
    return await _make_user(db, "bob")


def _auth_headers(user) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "username": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers(alice):
    return _auth_headers(alice)


@pytest.fixture
def bob_headers(bob):
    return _auth_headers(bob)


@pytest.fixture
async def client(session_factory, blob_store):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
