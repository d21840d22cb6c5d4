from __future__ import annotations

import asyncio
import copy
import uuid
from typing import Any, Sequence

from tokenstore.domain.entities import Document, RecordKey
from tokenstore.domain.filters import Filter, matches, validate_filters
from tokenstore.domain.ports.backend import PersistenceBackend


class InMemoryBackend(PersistenceBackend):
    """
    Process-local document store. Documents are copied in and out so callers
    never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._docs: dict[RecordKey, dict[str, Any]] = {}

    async def query(
        self,
        namespace: str,
        filters: Sequence[Filter] = (),
        *,
        keys_only: bool = False,
    ) -> list[Document]:
        checked = validate_filters(filters)
        async with self._lock:
            results = []
            for key, data in self._docs.items():
                if key.namespace != namespace or not matches(data, checked):
                    continue
                results.append(
                    Document(key=key, data={} if keys_only else copy.deepcopy(data))
                )
            return results

    async def upsert(self, key: RecordKey, document: dict[str, Any]) -> None:
        async with self._lock:
            self._docs[key] = copy.deepcopy(document)

    async def delete(self, keys: RecordKey | Sequence[RecordKey]) -> None:
        if isinstance(keys, RecordKey):
            keys = [keys]
        async with self._lock:
            for key in keys:
                self._docs.pop(key, None)

    async def allocate_key(self, namespace: str) -> RecordKey:
        return RecordKey(namespace=namespace, id=uuid.uuid4().hex)
