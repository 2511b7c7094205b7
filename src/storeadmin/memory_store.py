"""
═══════════════════════════════════════════════════════════════════════════════
StoreAdmin - In-Memory хранилища (замена PostgreSQL для локальной разработки)
═══════════════════════════════════════════════════════════════════════════════

In-memory реализации ``DocumentStore`` и ``IdentityProvider`` +
функция ``activate_memory_store()`` для подключения их как бэкендов.
Используются при недоступности БД и как подделки в тестах.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any

from storeadmin.adapters.identity_provider import (
    email_exists_error,
    new_uid,
    user_not_found_error,
    validate_credentials,
)
from storeadmin.db.document_store import (
    Document,
    DocumentNotFoundError,
    resolve_server_timestamps,
)
from storeadmin.services.auth_service import hash_password

logger = logging.getLogger(__name__)

_now = lambda: datetime.now(timezone.utc)  # noqa: E731


# ═══════════════════════════════════════════════════════════════════════════════
# DocumentStore in-memory
# ═══════════════════════════════════════════════════════════════════════════════

class MemoryWriteBatch:
    """Операции применяются только при ``commit()`` и все сразу."""

    def __init__(self, store: "MemoryDocumentStore") -> None:
        self._store = store
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
        # Применяем к копии, чтобы ошибка посреди batch не оставила частичных записей
        staged = copy.deepcopy(self._store._collections)
        for op, collection, doc_id, data in self._ops:
            docs = staged.setdefault(collection, {})
            if op == "set":
                docs[doc_id] = resolve_server_timestamps(data)
            elif op == "update":
                if doc_id not in docs:
                    raise DocumentNotFoundError(collection, doc_id)
                docs[doc_id].update(resolve_server_timestamps(data))
            else:
                docs.pop(doc_id, None)
        self._store._collections = staged
        self._committed = True


class MemoryDocumentStore:
    """Коллекции в dict: ``{collection: {doc_id: data}}``."""

    kind = "memory"

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._docs(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._docs(collection)[doc_id] = resolve_server_timestamps(copy.deepcopy(data))

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        docs = self._docs(collection)
        if doc_id not in docs:
            raise DocumentNotFoundError(collection, doc_id)
        docs[doc_id].update(resolve_server_timestamps(copy.deepcopy(data)))

    async def delete(self, collection: str, doc_id: str) -> None:
        self._docs(collection).pop(doc_id, None)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_uid()
        await self.set(collection, doc_id, data)
        return doc_id

    async def where(self, collection: str, field_name: str, value: Any) -> list[Document]:
        return [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._docs(collection).items()
            if data.get(field_name) == value
        ]

    def batch(self) -> MemoryWriteBatch:
        return MemoryWriteBatch(self)


# ═══════════════════════════════════════════════════════════════════════════════
# IdentityProvider in-memory
# ═══════════════════════════════════════════════════════════════════════════════

class MemoryIdentityProvider:
    """Аккаунты в dict ``{uid: account}``; email уникален без учёта регистра."""

    kind = "memory"

    def __init__(self) -> None:
        self._accounts: dict[str, dict[str, Any]] = {}

    async def create_user(self, email: str, password: str, display_name: str) -> dict[str, Any]:
        validate_credentials(email, password)
        email = email.lower()
        if any(a["email"] == email for a in self._accounts.values()):
            raise email_exists_error(email)
        uid = new_uid()
        account = {
            "uid": uid, "email": email, "display_name": display_name,
            "password_hash": hash_password(password), "custom_claims": {},
            "disabled": False, "created_at": _now(),
        }
        self._accounts[uid] = account
        logger.info("Memory identity provider: created account %s <%s>", uid, email)
        return {k: v for k, v in account.items() if k != "password_hash"}

    async def get_user(self, uid: str) -> dict[str, Any] | None:
        account = self._accounts.get(uid)
        if account is None:
            return None
        return {k: copy.deepcopy(v) for k, v in account.items() if k != "password_hash"}

    async def delete_user(self, uid: str) -> None:
        if self._accounts.pop(uid, None) is None:
            raise user_not_found_error(uid)

    async def set_custom_user_claims(self, uid: str, claims: dict[str, Any]) -> None:
        if uid not in self._accounts:
            raise user_not_found_error(uid)
        self._accounts[uid]["custom_claims"] = dict(claims)


# ═══════════════════════════════════════════════════════════════════════════════
# Активация in-memory бэкендов
# ═══════════════════════════════════════════════════════════════════════════════

def activate_memory_store() -> tuple[MemoryDocumentStore, MemoryIdentityProvider]:
    """
    Подключает in-memory бэкенды в ``storeadmin.dependencies``.

    Вызывается из storeadmin.main → lifespan() при недоступности БД.
    """
    from storeadmin.dependencies import configure_backends

    store = MemoryDocumentStore()
    identity = MemoryIdentityProvider()
    configure_backends(store, identity)
    logger.warning(
        "🧠 StoreAdmin memory store ACTIVATED - all data is in-memory (lost on restart)."
    )
    return store, identity
