from __future__ import annotations

from typing import Any, Protocol, Sequence

from tokenstore.domain.entities import Document, RecordKey
from tokenstore.domain.filters import Filter


class PersistenceBackend(Protocol):
    """
    Key/document store the token store delegates persistence to.

    Implementations raise StorageError for any driver failure. Each point
    operation is expected to be atomic on its own; nothing spans calls.
    """

    async def query(
        self,
        namespace: str,
        filters: Sequence[Filter] = (),
        *,
        keys_only: bool = False,
    ) -> list[Document]:
        """Return documents of `namespace` matching every filter."""

    async def upsert(self, key: RecordKey, document: dict[str, Any]) -> None:
        """Insert or fully replace the document stored under `key`."""

    async def delete(self, keys: RecordKey | Sequence[RecordKey]) -> None:
        """Delete one or many keys. Missing keys are ignored."""

    async def allocate_key(self, namespace: str) -> RecordKey:
        """Return a fresh, unused key in `namespace`."""
