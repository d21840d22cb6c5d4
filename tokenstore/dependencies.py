from __future__ import annotations

from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis

from tokenstore.application.token_store import TokenStore
from tokenstore.domain.errors import InvalidArgument
from tokenstore.domain.ports.backend import PersistenceBackend
from tokenstore.domain.ports.token_hasher import TokenHasher
from tokenstore.infrastructure.db.documents_repo import PgDocumentBackend
from tokenstore.infrastructure.memory.backend import InMemoryBackend
from tokenstore.infrastructure.redis_cache.documents import RedisDocumentBackend
from tokenstore.infrastructure.security.token_hasher import BcryptTokenHasher
from tokenstore.settings import Settings, get_settings


def _add_connect_timeout(dsn: str, seconds: int = 3) -> str:
    if "connect_timeout=" in dsn:
        return dsn
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={seconds}"


def create_pool(settings: Settings) -> AsyncConnectionPool:
    """New pool for DATABASE_URL, NOT opened. The caller opens and closes it."""
    return AsyncConnectionPool(
        _add_connect_timeout(settings.database_url),
        min_size=1,
        max_size=10,
        timeout=5,
        open=False,
    )


def create_redis(settings: Settings) -> Redis:
    """
    New client for REDIS_URL. Connects lazily; the caller closes it.
    decode_responses=True -> we get/put str, not bytes.
    """
    return Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)


def get_backend(
    *,
    pool: AsyncConnectionPool | None = None,
    redis: Redis | None = None,
) -> PersistenceBackend:
    settings = get_settings()
    if settings.storage_backend == "postgres":
        if pool is None:
            raise InvalidArgument("the postgres backend needs an open connection pool")
        return PgDocumentBackend(pool)
    if settings.storage_backend == "redis":
        if redis is None:
            raise InvalidArgument("the redis backend needs a client")
        return RedisDocumentBackend(redis, key_prefix=settings.redis_key_prefix)
    return InMemoryBackend()


def get_token_hasher() -> TokenHasher:
    return BcryptTokenHasher(rounds=get_settings().bcrypt_rounds)


def get_token_store(backend: PersistenceBackend | None = None) -> TokenStore:
    return TokenStore(
        backend if backend is not None else get_backend(),
        get_settings().token_namespace,
        hasher=get_token_hasher(),
    )
