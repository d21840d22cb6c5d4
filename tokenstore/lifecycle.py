from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from tokenstore.application.token_store import TokenStore
from tokenstore.dependencies import (
    create_pool,
    create_redis,
    get_backend,
    get_token_store,
)
from tokenstore.logging import setup_logging
from tokenstore.settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def token_store_lifespan(
    *, configure_logging: bool = True
) -> AsyncIterator[TokenStore]:
    """
    Open the resources of the configured backend, yield a ready store and
    release them on exit. Each lifespan owns its own pool or client.

        async with token_store_lifespan() as store:
            await store.store_or_update(token, uid, 15 * 60 * 1000)
    """
    settings = get_settings()
    if configure_logging:
        setup_logging(settings.log_level)

    # startup
    pool = None
    redis = None
    if settings.storage_backend == "postgres":
        pool = create_pool(settings)
        await pool.open()
    elif settings.storage_backend == "redis":
        redis = create_redis(settings)

    try:
        store = get_token_store(get_backend(pool=pool, redis=redis))
        logger.info(
            "token store ready",
            extra={"backend": settings.storage_backend, "namespace": store.namespace},
        )
        yield store
    finally:
        # shutdown
        if pool is not None:
            await pool.close()
        if redis is not None:
            await redis.aclose()
        logger.info("token store closed")
