"""
storeadmin/db/document_store.py - Документное хранилище (коллекции JSON-документов).

Контракт ``DocumentStore`` - то, что admin-операции ожидают от внешнего
документного хранилища:
    • get / set / update / delete по ключу (collection, doc_id)
    • add - создание документа с автоматическим id
    • where - запрос по равенству одного поля внутри коллекции
    • batch - группа записей, фиксируемая атомарно
    • SERVER_TIMESTAMP - значение, которое хранилище подменяет временем записи

Реализации:
    • ``PostgresDocumentStore`` - таблица ``documents`` (JSONB) через asyncpg
    • ``MemoryDocumentStore`` - см. ``storeadmin.memory_store``
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import uuid4

import asyncpg

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Sentinel: хранилище подставляет время фиксации записи."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentNotFoundError(Exception):
    """``update`` по несуществующему документу."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document to update: {collection}/{doc_id}")


@dataclass
class Document:
    """Снимок документа: id + данные."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


def resolve_server_timestamps(data: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Заменяет SERVER_TIMESTAMP (в том числе во вложенных dict) на текущее время UTC."""
    now = now or datetime.now(timezone.utc)
    resolved: dict[str, Any] = {}
    for key, value in data.items():
        if value is SERVER_TIMESTAMP:
            resolved[key] = now
        elif isinstance(value, dict):
            resolved[key] = resolve_server_timestamps(value, now)
        else:
            resolved[key] = value
    return resolved


# ═══════════════════════════════════════════════════════════════════════════════
# Контракты
# ═══════════════════════════════════════════════════════════════════════════════

class WriteBatch(Protocol):
    """Группа записей, применяемая атомарно при ``commit()``."""

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...

    async def commit(self) -> None: ...


class DocumentStore(Protocol):
    """Минимальный интерфейс документного хранилища для admin-операций."""

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str: ...

    async def where(self, collection: str, field_name: str, value: Any) -> list[Document]: ...

    def batch(self) -> WriteBatch: ...


# ═══════════════════════════════════════════════════════════════════════════════
# PostgreSQL (asyncpg)
# ═══════════════════════════════════════════════════════════════════════════════

def _dumps(data: dict[str, Any]) -> str:
    return json.dumps(resolve_server_timestamps(data), default=str)


def _loads(raw: Any) -> dict[str, Any]:
    # asyncpg отдаёт JSONB строкой, если кодек не зарегистрирован
    if isinstance(raw, str):
        return json.loads(raw)
    return dict(raw or {})


async def _set(conn: asyncpg.Connection, collection: str, doc_id: str, data: dict) -> None:
    await conn.execute(
        """
        INSERT INTO documents (collection, doc_id, data)
        VALUES ($1, $2, $3::jsonb)
        ON CONFLICT (collection, doc_id)
        DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
        """,
        collection, doc_id, _dumps(data),
    )


async def _update(conn: asyncpg.Connection, collection: str, doc_id: str, data: dict) -> None:
    result = await conn.execute(
        """
        UPDATE documents SET data = data || $3::jsonb, updated_at = NOW()
        WHERE collection = $1 AND doc_id = $2
        """,
        collection, doc_id, _dumps(data),
    )
    if result.endswith(" 0"):
        raise DocumentNotFoundError(collection, doc_id)


async def _delete(conn: asyncpg.Connection, collection: str, doc_id: str) -> None:
    await conn.execute(
        "DELETE FROM documents WHERE collection = $1 AND doc_id = $2",
        collection, doc_id,
    )


class PostgresWriteBatch:
    """Накопитель операций; ``commit()`` выполняет их в одной транзакции."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool
        self._ops: list[tuple[str, str, str, dict | None]] = []
        self._committed = False

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._ops.append(("set", collection, doc_id, data))

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._ops.append(("update", collection, doc_id, data))

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append(("delete", collection, doc_id, None))

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch already committed")
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                for op, collection, doc_id, data in self._ops:
                    if op == "set":
                        await _set(conn, collection, doc_id, data)
                    elif op == "update":
                        await _update(conn, collection, doc_id, data)
                    else:
                        await _delete(conn, collection, doc_id)
        self._committed = True
        logger.debug("Batch committed (%d ops)", len(self._ops))


class PostgresDocumentStore:
    """Документы в таблице ``documents (collection, doc_id, data JSONB)``."""

    kind = "postgres"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM documents WHERE collection = $1 AND doc_id = $2",
                collection, doc_id,
            )
            return _loads(row["data"]) if row else None

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        async with self._pool.acquire() as conn:
            await _set(conn, collection, doc_id, data)

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        async with self._pool.acquire() as conn:
            await _update(conn, collection, doc_id, data)

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._pool.acquire() as conn:
            await _delete(conn, collection, doc_id)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        await self.set(collection, doc_id, data)
        return doc_id

    async def where(self, collection: str, field_name: str, value: Any) -> list[Document]:
        """Запрос по равенству: ``data @> {field: value}``."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT doc_id, data FROM documents
                WHERE collection = $1 AND data @> $2::jsonb
                ORDER BY created_at
                """,
                collection, json.dumps({field_name: value}, default=str),
            )
            return [Document(id=r["doc_id"], data=_loads(r["data"])) for r in rows]

    def batch(self) -> PostgresWriteBatch:
        return PostgresWriteBatch(self._pool)
