import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker, create_async_engine)

from app.core.config import settings
from app.core.exceptions import ShopError

# Initialize the logger for async database events
logger = logging.getLogger(__name__)

# --- DATABASE URL CONFIGURATION ---

db_url = settings.database_url

if not db_url:
    raise RuntimeError("DATABASE_URL is not set")

if db_url.startswith("postgresql://"):
    # The application always talks to Postgres through asyncpg
    async_db = db_url.replace("postgresql://", "postgresql+asyncpg://")
else:
    async_db = db_url


# --- ASYNC ENGINE CONFIG (FastAPI)

async_engine = create_async_engine(
    async_db,
    echo=False,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_= AsyncSession,
    expire_on_commit= False,
)


# --- FASTAPI DEPENDENCY
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    FastAPI Dependency that provides one asynchronous database session per request.
    Anything left uncommitted when the request fails is rolled back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except ShopError:
            # Domain outcome, already mapped to a response
            await session.rollback()
            raise
        except Exception as e:
            await session.rollback()
            logger.exception(f"Database: request session aborted: {e}")
            raise
        finally:
            await session.close()


# --- CONTEXT MANAGER ---

@asynccontextmanager
async def transaction_scope(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Provide a transactional scope around a series of writes.

    Everything added or flushed inside the block is committed together when it
    exits cleanly. Any exception, including one raised after some rows were
    already flushed, rolls the whole unit back before propagating.
    """
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Database Scope Error: {e}")
        raise
