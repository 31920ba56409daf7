import os

# Settings are read at import time, so the test env must exist first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import get_db
from app.ai_feature.generator import get_generator


class FakeGenerator:
    """Scripted stand-in for Gemini: returns queued responses in order."""

    def __init__(self):
        self.responses = []
        self.error = None
        self.calls = []

    async def complete(self, system, prompt, temperature, max_output_tokens):
        self.calls.append(
            {
                "system": system,
                "prompt": prompt,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            }
        )
        if self.error:
            raise self.error
        return self.responses.pop(0)


# Fresh in-memory database for every test; StaticPool keeps the single connection alive
@pytest_asyncio.fixture(scope="function")
async def engine():
    test_engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(engine):
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def restaurants(engine):
    async with engine.begin() as conn:
        await conn.exec_driver_sql(
            "CREATE TABLE restaurants ("
            " id INTEGER PRIMARY KEY,"
            " name VARCHAR(100) NOT NULL UNIQUE,"
            " city VARCHAR(50))"
        )
        await conn.exec_driver_sql(
            "INSERT INTO restaurants (name, city) VALUES"
            " ('Chez Paul', 'Paris'),"
            " ('Le Bouchon', 'Lyon'),"
            " ('Bistro 9', 'Paris'),"
            " ('Nowhere Diner', NULL)"
        )
    return "restaurants"


@pytest_asyncio.fixture(scope="function")
async def generator():
    return FakeGenerator()


# Client
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, generator: FakeGenerator):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generator] = lambda: generator

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
