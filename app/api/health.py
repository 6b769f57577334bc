from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.sessions import get_async_session

router = APIRouter(tags=["Health"])


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return str(e)
    return "ok"


async def _check_redis() -> str:
    # Only the rate limiter depends on Redis
    client = Redis.from_url(settings.redis_url)
    try:
        await client.ping()
    except Exception as e:
        return str(e)
    finally:
        await client.aclose()
    return "ok"


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_async_session)):
    dependencies = {
        "database": await _check_database(db),
        "redis": await _check_redis(),
    }
    healthy = all(state == "ok" for state in dependencies.values())
    return {"status": "healthy" if healthy else "unhealthy", "dependencies": dependencies}
