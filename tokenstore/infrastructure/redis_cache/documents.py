from __future__ import annotations

import json
import uuid
from typing import Any, Sequence

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tokenstore.domain.entities import Document, RecordKey
from tokenstore.domain.errors import StorageError
from tokenstore.domain.filters import Filter, matches, validate_filters
from tokenstore.domain.ports.backend import PersistenceBackend


class RedisDocumentBackend(PersistenceBackend):
    """
    Redis implementation of PersistenceBackend.

    Layout, for prefix "pwl:" and namespace "ns":
      pwl:ns:doc:<id>  JSON string of the document
      pwl:ns:keys      set of every <id> in the namespace
    Redis has no secondary indexes, so filters are evaluated client side
    over the namespace.
    """

    def __init__(self, redis: Redis, *, key_prefix: str = "pwl:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    def _doc_key(self, key: RecordKey) -> str:
        return f"{self._prefix}{key.namespace}:doc:{key.id}"

    def _index_key(self, namespace: str) -> str:
        return f"{self._prefix}{namespace}:keys"

    async def query(
        self,
        namespace: str,
        filters: Sequence[Filter] = (),
        *,
        keys_only: bool = False,
    ) -> list[Document]:
        checked = validate_filters(filters)
        try:
            ids = sorted(await self._redis.smembers(self._index_key(namespace)))
            if not ids:
                return []
            keys = [RecordKey(namespace=namespace, id=i) for i in ids]
            raw = await self._redis.mget([self._doc_key(k) for k in keys])
        except RedisError as e:
            raise StorageError(f"redis query failed: {e}") from e

        documents: list[Document] = []
        for key, payload in zip(keys, raw):
            # index entry whose document is already gone
            if payload is None:
                continue
            try:
                data = json.loads(payload)
            except ValueError as e:
                raise StorageError(f"corrupt document at {self._doc_key(key)}: {e}") from e
            if not matches(data, checked):
                continue
            documents.append(Document(key=key, data={} if keys_only else data))
        return documents

    async def upsert(self, key: RecordKey, document: dict[str, Any]) -> None:
        payload = json.dumps(document)
        try:
            pipe = self._redis.pipeline(transaction=True)
            pipe.set(self._doc_key(key), payload)
            pipe.sadd(self._index_key(key.namespace), key.id)
            await pipe.execute()
        except RedisError as e:
            raise StorageError(f"redis upsert failed: {e}") from e

    async def delete(self, keys: RecordKey | Sequence[RecordKey]) -> None:
        if isinstance(keys, RecordKey):
            keys = [keys]
        if not keys:
            return
        try:
            pipe = self._redis.pipeline(transaction=True)
            for key in keys:
                pipe.delete(self._doc_key(key))
                pipe.srem(self._index_key(key.namespace), key.id)
            await pipe.execute()
        except RedisError as e:
            raise StorageError(f"redis delete failed: {e}") from e

    async def allocate_key(self, namespace: str) -> RecordKey:
        return RecordKey(namespace=namespace, id=uuid.uuid4().hex)
