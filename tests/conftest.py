import os
from collections.abc import AsyncGenerator, Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.sql import Executable

from itemsearch.infra.database import Base
from itemsearch.infra.executor import SessionQueryExecutor
from itemsearch.items import models  # noqa: F401
from itemsearch.items.schemas import ItemCreate
from itemsearch.search.service import SimilarityService


class FakeExecutor:
    """In-memory QueryExecutor that records statements and replays canned rows."""

    def __init__(self):
        self.statements: list[Executable] = []
        self.rows: list[Mapping[str, Any]] = []
        self.rowcount = 0
        self.error: Exception | None = None

    async def fetch_all(self, statement: Executable) -> list[Mapping[str, Any]]:
        self.statements.append(statement)
        if self.error:
            raise self.error
        return list(self.rows)

    async def execute(self, statement: Executable) -> int:
        self.statements.append(statement)
        if self.error:
            raise self.error
        return self.rowcount


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fake_service(fake_executor) -> SimilarityService:
    return SimilarityService(fake_executor)


@pytest.fixture
def make_row():
    """Factory for result rows shaped like the item queries' output."""

    def _make_row(**overrides: Any) -> dict[str, Any]:
        row = {
            "id": 1,
            "name": "Apple",
            "category": "Fruit",
            "price": Decimal("1.50"),
            "embedding": "[1,0.5,0.2,0.1]",
            "created_at": datetime(2025, 1, 1, 12, 0, tzinfo=UTC),
        }
        row.update(overrides)
        return row

    return _make_row


# Items used by the PostgreSQL integration tests
SAMPLE_ITEMS = [
    ItemCreate(name="Apple", category="Fruit", price=Decimal("1.50"), embedding=[1.0, 0.5, 0.2, 0.1]),
    ItemCreate(name="Broccoli", category="Vegetable", price=Decimal("1.80"), embedding=[0.2, 0.1, 0.8, 0.3]),
    ItemCreate(name="Steak", category="Meat", price=Decimal("12.00"), embedding=[0.1, 0.2, 0.3, 0.9]),
    ItemCreate(name="Mystery Box", category=None, price=Decimal("5.00"), embedding=None),
]


@pytest.fixture
async def test_engine():
    """Create a test database engine with a fresh items table."""
    database_url = os.getenv("DATABASE_URL")

    if not database_url or "postgresql" not in database_url:
        # Skip database tests if no PostgreSQL available
        pytest.skip("No PostgreSQL database available for testing")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def service(db_session) -> SimilarityService:
    return SimilarityService(SessionQueryExecutor(db_session))


@pytest.fixture
async def seeded_items(service):
    """Insert the sample items and return them keyed by name."""
    saved = {}
    for item in SAMPLE_ITEMS:
        record = await service.save(item)
        saved[record.name] = record
    return saved
