import os

# Must be set before the app (and its settings) are imported
os.environ["ENVIRONMENT"] = "testing"

from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db.base import Base
from app.db.enums import UserRole
from app.db.sessions import get_async_session
from app.main import app
from app.models.product import Product
from app.models.user import User


# DATABASE SETUP (SQLite in-memory, SAFE)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingAsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


# PYTEST CORE FIXTURES
@pytest.fixture(scope="session")
def test_app():
    app.debug = True
    return app


@pytest.fixture(scope="function", autouse=True)
async def setup_db():
    """Create and drop tables per test (NO engine.dispose)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with TestingAsyncSessionLocal() as session:
        yield session


@pytest.fixture(scope="session", autouse=True)
async def close_engine():
    yield
    await engine.dispose()


# DEPENDENCY OVERRIDES
@pytest.fixture(autouse=True)
def override_dependencies(test_app, db_session):

    async def _get_test_session():
        yield db_session

    test_app.dependency_overrides[get_async_session] = _get_test_session

    yield

    test_app.dependency_overrides.clear()


# HTTP CLIENT
@pytest.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://localhost",
    ) as ac:
        yield ac


# DATA FIXTURES
@pytest.fixture
async def test_customer(db_session):
    user = User(
        name="Test Customer",
        email="test@example.com",
        role=UserRole.CUSTOMER,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def other_customer(db_session):
    user = User(
        name="Other Customer",
        email="other@example.com",
        role=UserRole.CUSTOMER,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def customer_token(test_customer):
    return {"Authorization": f"Bearer {create_access_token(test_customer)}"}


@pytest.fixture
def other_customer_token(other_customer):
    return {"Authorization": f"Bearer {create_access_token(other_customer)}"}


@pytest.fixture
async def sample_products(db_session):
    """Two catalog entries: "Notebook" at 10.00 and "Pencil" at 5.00."""
    notebook = Product(
        title="Notebook",
        description="A5 dotted notebook",
        price=Decimal("10.00"),
        category="Stationery",
    )
    pencil = Product(
        title="Pencil",
        description="HB graphite pencil",
        price=Decimal("5.00"),
        category="Stationery",
    )
    db_session.add_all([notebook, pencil])
    await db_session.commit()
    await db_session.refresh(notebook)
    await db_session.refresh(pencil)
    return {"notebook": notebook, "pencil": pencil}
