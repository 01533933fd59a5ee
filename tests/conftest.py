"""Shared fixtures: in-memory database, fake gateways and an API client."""

import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.api.deps import get_classification_gateway, get_ledger_gateway, get_storage
from app.core.immutability import register_immutability_enforcement
from app.core.middleware import classification_limiter, verification_limiter
from app.database import Base, get_db
from app.main import app
from app.services.ai_service import AIService
from tests.factories import FakeClassificationGateway, FakeLedger, FakeStorage, create_user


# ============ DATABASE ============


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    register_immutability_enforcement()
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============ FAKES ============


@pytest.fixture
def classifier():
    return FakeClassificationGateway()


@pytest.fixture
def ai(classifier):
    return AIService(classifier)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def storage():
    return FakeStorage()


# ============ USERS ============


@pytest.fixture
async def customer(db):
    return await create_user(db, "customer")


@pytest.fixture
async def other_customer(db):
    return await create_user(db, "customer")


@pytest.fixture
async def analyst(db):
    return await create_user(db, "bank_analyst")


@pytest.fixture
async def admin(db):
    return await create_user(db, "bank_admin")


# ============ API CLIENT ============


@pytest.fixture
async def client(session_factory, classifier, ledger, storage):
    """HTTP client against the app with the database and gateways replaced."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classification_gateway] = lambda: classifier
    app.dependency_overrides[get_ledger_gateway] = lambda: ledger
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[classification_limiter] = lambda: None
    app.dependency_overrides[verification_limiter] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
