import os
from pathlib import Path

import pytest_asyncio
from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis

from tokenstore.infrastructure.db import migrate

REDIS_URL = os.environ.get("REDIS_URL", "redis://redis:6379/0")
DATABASE_URL = os.environ.get("DATABASE_URL", "postgresql://app:app@db:5432/app")


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url(REDIS_URL, encoding="utf-8", decode_responses=True)
    try:
        yield r
    finally:
        await r.aclose()


async def _apply_schema(pool: AsyncConnectionPool) -> None:
    async with pool.connection() as conn:
        async with conn.cursor() as cur:
            for path in migrate.list_migrations():
                await cur.execute(Path(path).read_text(encoding="utf-8"))


@pytest_asyncio.fixture
async def pg_pool():
    pool = AsyncConnectionPool(DATABASE_URL, min_size=1, max_size=4, timeout=30, open=False)
    await pool.open(wait=True, timeout=30)
    try:
        await _apply_schema(pool)
        yield pool
    finally:
        await pool.close()
