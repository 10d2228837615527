"""
Pytest fixtures for test database, client, and seed data.

Runs against PostgreSQL when TEST_DATABASE_URL is set, otherwise against a
throwaway SQLite file. Tables are created and dropped per test for isolation.

Every HTTP request gets its own session (as in production), so concurrent
requests exercise real transaction boundaries. On SQLite each transaction
holds the database write lock: seed data through the factory fixtures, which
commit and close their session, and never keep a session open across HTTP
calls.
"""

import os
import tempfile
import uuid
from datetime import date, timedelta
from typing import AsyncGenerator

_TMP_DIR = tempfile.mkdtemp(prefix="slotbook-test-")
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
)

# Must be set before slotbook reads its settings
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from slotbook.main import app  # noqa: E402
from slotbook.db.base import Base  # noqa: E402
from slotbook.db.session import create_engine, create_session_factory, get_db  # noqa: E402
from slotbook.models import Availability, Product  # noqa: E402

BOOKING_DATE = date.today() + timedelta(days=7)


@pytest_asyncio.fixture
async def engine():
    """Fresh schema per test."""
    test_engine = create_engine(TEST_DATABASE_URL)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_product(session_factory):
    """Factory: create a committed product."""

    async def _make(capacity: int = 10, name: str = "Sunset Kayak Tour") -> Product:
        product = Product(id=uuid.uuid4(), name=name, capacity=capacity)
        async with session_factory() as session:
            session.add(product)
            await session.commit()
        return product

    return _make


@pytest_asyncio.fixture
async def make_availability(session_factory):
    """Factory: create a committed availability row for a product and date."""

    async def _make(product: Product, local_date: date = BOOKING_DATE) -> Availability:
        availability = Availability(id=uuid.uuid4(), product_id=product.id, date=local_date)
        async with session_factory() as session:
            session.add(availability)
            await session.commit()
        return availability

    return _make


@pytest_asyncio.fixture
async def product(make_product) -> Product:
    """Product with capacity 10."""
    return await make_product(capacity=10)


@pytest_asyncio.fixture
async def availability(make_availability, product) -> Availability:
    """Availability one week out for the capacity-10 product."""
    return await make_availability(product)
