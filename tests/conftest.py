"""
Pytest fixtures - test DB, client, collaborators, auth (TDD/BDD support).
Challenge: Isolated tests; every test gets its own SQLite file, change channel and bucket root.
"""

import os
import tempfile
from typing import AsyncGenerator

# Settings are cached on first import; point them at local backends before the app loads
os.environ.setdefault("REALTIME_BACKEND", "memory")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="barter-storage-"))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.security import hash_password
from app.core.session_store import SessionContext, SessionStore, get_session_store
from app.db.base import Base
from app.db.models import Account, Item, Profile
from app.db.session import get_db, get_session_factory
from app.main import app
from app.realtime.changes import ChangeChannel, get_change_channel
from app.services.auth_service import issue_session
from app.services.provisioning import ProfileProvisioner, get_provisioner
from app.storage.object_store import ObjectStore, get_object_store

PASSWORD = "password123"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as s:
        yield s


@pytest.fixture
def changes() -> ChangeChannel:
    return ChangeChannel()


@pytest.fixture
def store(tmp_path) -> ObjectStore:
    return ObjectStore(tmp_path / "storage", "http://test/storage")


@pytest.fixture
def provisioner(session_factory) -> ProfileProvisioner:
    return ProfileProvisioner(session_factory)


@pytest.fixture
def session_store(provisioner) -> SessionStore:
    s = SessionStore()
    s.subscribe(provisioner.on_session_change)
    return s


@pytest_asyncio.fixture
async def client(session_factory, changes, store, provisioner, session_store):
    # One session per request, as in production
    async def override_get_db():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_change_channel] = lambda: changes
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_provisioner] = lambda: provisioner
    app.dependency_overrides[get_session_store] = lambda: session_store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_trader(session: AsyncSession, email: str, username: str) -> SessionContext:
    """Account plus profile, committed so other connections see them."""
    account = Account(email=email, hashed_password=hash_password(PASSWORD))
    session.add(account)
    await session.flush()
    session.add(Profile(id=account.id, username=username, reputation_score=0.0, trades_completed=0))
    await session.commit()
    return issue_session(account.id, email)


async def create_item(
    session: AsyncSession,
    owner: SessionContext,
    title: str,
    category: str = "Home",
    description: str = "",
    estimated_value: float = 10.0,
) -> str:
    item = Item(
        user_id=owner.user_id,
        title=title,
        description=description,
        condition="Good",
        category=category,
        estimated_value=estimated_value,
        images=[f"http://test/storage/items/{owner.user_id}/{title}.jpg"],
        status="available",
    )
    session.add(item)
    await session.commit()
    return item.id


def bearer(ctx: SessionContext) -> dict:
    return {"Authorization": f"Bearer {ctx.access_token}"}


@pytest_asyncio.fixture
async def alice(session) -> SessionContext:
    return await create_trader(session, "alice@example.com", "alice")


@pytest_asyncio.fixture
async def bob(session) -> SessionContext:
    return await create_trader(session, "bob@example.com", "bob")


@pytest_asyncio.fixture
async def carol(session) -> SessionContext:
    return await create_trader(session, "carol@example.com", "carol")


@pytest.fixture
def auth_headers(alice: SessionContext) -> dict:
    return bearer(alice)
