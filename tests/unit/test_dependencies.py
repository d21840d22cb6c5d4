import pytest

import tokenstore.dependencies as deps
from tokenstore.application.token_store import TokenStore
from tokenstore.domain.errors import InvalidArgument
from tokenstore.infrastructure.db.documents_repo import PgDocumentBackend
from tokenstore.infrastructure.memory.backend import InMemoryBackend
from tokenstore.infrastructure.redis_cache.documents import RedisDocumentBackend
from tokenstore.infrastructure.security.token_hasher import BcryptTokenHasher
from tokenstore.settings import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_memory_backend_by_default(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    assert isinstance(deps.get_backend(), InMemoryBackend)


def test_postgres_backend_uses_given_pool(monkeypatch):
    pool = object()
    monkeypatch.setenv("STORAGE_BACKEND", "postgres")

    backend = deps.get_backend(pool=pool)

    assert isinstance(backend, PgDocumentBackend)
    assert backend._pool is pool  # type: ignore[attr-defined]


def test_redis_backend_uses_prefix(monkeypatch):
    client = object()
    monkeypatch.setenv("STORAGE_BACKEND", "redis")
    monkeypatch.setenv("REDIS_KEY_PREFIX", "magic:")

    backend = deps.get_backend(redis=client)

    assert isinstance(backend, RedisDocumentBackend)
    assert backend._redis is client  # type: ignore[attr-defined]
    assert backend._prefix == "magic:"  # type: ignore[attr-defined]


@pytest.mark.parametrize("storage_backend", ["postgres", "redis"])
def test_networked_backend_needs_its_resource(monkeypatch, storage_backend):
    monkeypatch.setenv("STORAGE_BACKEND", storage_backend)

    with pytest.raises(InvalidArgument):
        deps.get_backend()


@pytest.mark.parametrize(
    "dsn, expected",
    [
        ("postgresql://db/app", "postgresql://db/app?connect_timeout=3"),
        ("postgresql://db/app?sslmode=off", "postgresql://db/app?sslmode=off&connect_timeout=3"),
        ("postgresql://db/app?connect_timeout=9", "postgresql://db/app?connect_timeout=9"),
    ],
)
def test_connect_timeout_is_added_once(dsn, expected):
    assert deps._add_connect_timeout(dsn) == expected


def test_each_redis_client_is_new(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
    settings = get_settings()

    first = deps.create_redis(settings)
    second = deps.create_redis(settings)

    assert first is not second
    kwargs = first.connection_pool.connection_kwargs
    assert kwargs["decode_responses"] is True
    assert kwargs["host"] == "cache"
    assert kwargs["db"] == 2


def test_hasher_rounds_follow_settings(monkeypatch):
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    hasher = deps.get_token_hasher()
    assert isinstance(hasher, BcryptTokenHasher)
    assert hasher.rounds == 4


def test_token_store_uses_configured_namespace(monkeypatch):
    monkeypatch.setenv("TOKEN_NAMESPACE", "invite-token")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    backend = InMemoryBackend()

    store = deps.get_token_store(backend)

    assert isinstance(store, TokenStore)
    assert store.namespace == "invite-token"
