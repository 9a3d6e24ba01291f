"""Shared fixtures: a throwaway SQLite database per test and an API client."""

from contextlib import asynccontextmanager
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.database import Base, get_async_session
from app.core.rate_limit import limiter
from app.core.security import ROLE_ADMIN
from app.main import app
from app.models import Card
from app.services import tap_ingestor

from tests.factories import auth_headers


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tapcard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def unlocked_sessions(monkeypatch):
    """Run appends without Redis."""

    @asynccontextmanager
    async def _no_lock(card_id, session_id):
        yield True

    monkeypatch.setattr(tap_ingestor, "session_lock", _no_lock)


@pytest.fixture(autouse=True)
def no_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
async def card(session, owner_id) -> Card:
    card = Card(user_id=owner_id, label="Juan's Card")
    session.add(card)
    await session.commit()
    return card


@pytest.fixture
async def other_card(session) -> Card:
    card = Card(user_id=uuid4(), label="Someone Else")
    session.add(card)
    await session.commit()
    return card


@pytest.fixture
def owner_headers(owner_id) -> dict[str, str]:
    return auth_headers(owner_id)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(uuid4(), role=ROLE_ADMIN)


@pytest.fixture
async def client(session_factory):
    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
