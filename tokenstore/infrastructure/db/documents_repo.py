from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Any, Sequence

import psycopg
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from tokenstore.domain.entities import Document, RecordKey
from tokenstore.domain.errors import StorageError
from tokenstore.domain.filters import Filter, validate_filters
from tokenstore.domain.ports.backend import PersistenceBackend

_SQL_OPERATORS = {
    "=": "=",
    "!=": "<>",
    ">": ">",
    ">=": ">=",
    "<": "<",
    "<=": "<=",
}


class PgDocumentBackend(PersistenceBackend):
    """
    Postgres implementation of PersistenceBackend.

    Documents live as jsonb in `token_documents`, keyed by (namespace, id).
    Filters compare `document -> field` against the value encoded as jsonb,
    so numbers compare numerically and strings lexically.
    Every call borrows its own connection; the pool commits on exit.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def query(
        self,
        namespace: str,
        filters: Sequence[Filter] = (),
        *,
        keys_only: bool = False,
    ) -> list[Document]:
        clauses = ["namespace = %s"]
        params: list[Any] = [namespace]
        for f in validate_filters(filters):
            clauses.append(f"document -> %s::text {_SQL_OPERATORS[f.op]} %s")
            params.extend([f.field, Jsonb(f.value)])

        columns = "id" if keys_only else "id, document"
        sql = f"""
        SELECT {columns}
        FROM token_documents
        WHERE {" AND ".join(clauses)}
        ORDER BY created_at
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, params)
                    rows = await cur.fetchall()
        except psycopg.Error as e:
            raise StorageError(f"token_documents query failed: {e}") from e

        documents: list[Document] = []
        for row in rows:
            key = RecordKey(namespace=namespace, id=str(row[0]))
            data = {} if keys_only else dict(row[1] or {})
            documents.append(Document(key=key, data=data))
        return documents

    async def upsert(self, key: RecordKey, document: dict[str, Any]) -> None:
        sql = """
        INSERT INTO token_documents (namespace, id, document)
        VALUES (%s, %s, %s)
        ON CONFLICT (namespace, id) DO UPDATE
            SET document = EXCLUDED.document,
                updated_at = now()
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(sql, (key.namespace, key.id, Jsonb(document)))
        except psycopg.Error as e:
            raise StorageError(f"token_documents upsert failed: {e}") from e

    async def delete(self, keys: RecordKey | Sequence[RecordKey]) -> None:
        if isinstance(keys, RecordKey):
            keys = [keys]
        ids_by_namespace: dict[str, list[str]] = defaultdict(list)
        for key in keys:
            ids_by_namespace[key.namespace].append(key.id)
        if not ids_by_namespace:
            return

        sql = """
        DELETE FROM token_documents
        WHERE namespace = %s AND id = ANY(%s)
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor() as cur:
                    for namespace, ids in ids_by_namespace.items():
                        await cur.execute(sql, (namespace, ids))
        except psycopg.Error as e:
            raise StorageError(f"token_documents delete failed: {e}") from e

    async def allocate_key(self, namespace: str) -> RecordKey:
        return RecordKey(namespace=namespace, id=uuid.uuid4().hex)
