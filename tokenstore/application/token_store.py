from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from tokenstore.domain.entities import TokenRecord
from tokenstore.domain.errors import InvalidArgument
from tokenstore.domain.filters import eq, gt
from tokenstore.domain.ports.backend import PersistenceBackend
from tokenstore.domain.ports.token_hasher import MAX_TOKEN_BYTES, TokenHasher
from tokenstore.domain.ports.token_store import AuthenticationResult, TokenStorePort

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "passwordless-token"

_NOT_AUTHENTICATED = AuthenticationResult(valid=False, origin_url=None)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _require(value: object, name: str, operation: str) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidArgument(f"{operation}: {name} must be a non-empty string")


def _require_token(token: object, operation: str) -> None:
    _require(token, "token", operation)
    if len(token.encode("utf-8")) > MAX_TOKEN_BYTES:
        raise InvalidArgument(
            f"{operation}: token must be at most {MAX_TOKEN_BYTES} bytes"
        )
    if "\x00" in token:
        raise InvalidArgument(f"{operation}: token must not contain NUL bytes")


class TokenStore(TokenStorePort):
    """
    Single active token per user, persisted as a bcrypt digest.

    Each operation is a short sequence of backend point calls. Nothing is
    wrapped in a transaction: two concurrent store_or_update() calls for the
    same uid end with whichever upsert commits last.

    Usage:
        store = TokenStore(InMemoryBackend(), hasher=BcryptTokenHasher())
        await store.store_or_update(token, "u1", 60_000, "/dashboard")
        valid, origin_url = await store.authenticate(token, "u1")
    """

    def __init__(
        self,
        backend: PersistenceBackend | None,
        namespace: str = DEFAULT_NAMESPACE,
        *,
        hasher: TokenHasher,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if backend is None:
            raise InvalidArgument("a persistence backend has to be provided")
        if not namespace:
            raise InvalidArgument("namespace must be a non-empty string")
        self._backend = backend
        self._namespace = namespace
        self._hasher = hasher
        self._clock = clock or _now_ms

    @property
    def namespace(self) -> str:
        return self._namespace

    async def authenticate(self, token: str, uid: str) -> AuthenticationResult:
        _require_token(token, "authenticate")
        _require(uid, "uid", "authenticate")

        documents = await self._backend.query(
            self._namespace, [eq("uid", uid), gt("ttl", self._clock())]
        )
        if not documents:
            logger.debug(
                "no live token", extra={"uid": uid, "namespace": self._namespace}
            )
            return _NOT_AUTHENTICATED

        record = TokenRecord.from_document(documents[0].data)
        # HashingError propagates: a broken digest never authenticates
        matched = await asyncio.to_thread(
            self._hasher.compare, token, record.hashed_token
        )
        if not matched:
            logger.debug(
                "token mismatch", extra={"uid": uid, "namespace": self._namespace}
            )
            return _NOT_AUTHENTICATED

        return AuthenticationResult(valid=True, origin_url=record.origin_url or "")

    async def store_or_update(
        self,
        token: str,
        uid: str,
        ms_to_live: int,
        origin_url: str | None = None,
    ) -> None:
        _require_token(token, "store_or_update")
        _require(uid, "uid", "store_or_update")
        if isinstance(ms_to_live, bool) or not isinstance(ms_to_live, int):
            raise InvalidArgument("store_or_update: ms_to_live must be an integer")
        if ms_to_live <= 0:
            raise InvalidArgument("store_or_update: ms_to_live must be positive")

        hashed_token = await asyncio.to_thread(self._hasher.hash, token)
        record = TokenRecord(
            uid=uid,
            hashed_token=hashed_token,
            ttl=self._clock() + ms_to_live,
            origin_url=origin_url,
        )

        # ttl is ignored here: a stale record's key is reused, not duplicated
        existing = await self._backend.query(
            self._namespace, [eq("uid", uid)], keys_only=True
        )
        if existing:
            key = existing[0].key
        else:
            key = await self._backend.allocate_key(self._namespace)

        await self._backend.upsert(key, record.to_document())
        logger.debug(
            "token stored",
            extra={
                "uid": uid,
                "namespace": self._namespace,
                "replaced": bool(existing),
                "expires_at": record.expires_at.isoformat(),
            },
        )

    async def invalidate_user(self, uid: str) -> None:
        _require(uid, "uid", "invalidate_user")

        documents = await self._backend.query(
            self._namespace, [eq("uid", uid)], keys_only=True
        )
        if not documents:
            return
        await self._backend.delete([d.key for d in documents])
        logger.debug(
            "user invalidated", extra={"uid": uid, "namespace": self._namespace}
        )

    async def clear(self) -> None:
        documents = await self._backend.query(self._namespace, keys_only=True)
        if not documents:
            return
        await self._backend.delete([d.key for d in documents])
        logger.debug(
            "store cleared",
            extra={"namespace": self._namespace, "count": len(documents)},
        )

    async def length(self) -> int:
        # raw storage count: expired records are included
        documents = await self._backend.query(self._namespace, keys_only=True)
        return len(documents)
