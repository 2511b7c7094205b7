"""
storeadmin/services/audit_logger.py - Аудит-лог admin-операций.

Действия:
    • user.delete, user.role_update
    • partner.approve, staff.create

Пишет записи в коллекцию ``audit_log`` документного хранилища
и публикует их в NATS. При сбое записи - in-memory буфер
(``flush_buffer`` повторяет попытку).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from storeadmin.db.collections import COLLECTION_AUDIT_LOG
from storeadmin.db.document_store import DocumentStore

logger = logging.getLogger(__name__)


class AdminAuditAction(str, Enum):
    """Типы аудируемых действий."""

    USER_DELETE = "user.delete"
    USER_ROLE_UPDATE = "user.role_update"
    PARTNER_APPROVE = "partner.approve"
    STAFF_CREATE = "staff.create"


class AdminAuditLogger:
    """
    Аудит-логгер StoreAdmin.

    Поддерживает:
    - документное хранилище (коллекция audit_log)
    - In-memory буфер (fallback)
    - NATS-публикацию аудит-событий
    """

    def __init__(self, max_buffer_size: int = 10000) -> None:
        self._buffer: list[dict[str, Any]] = []
        self._max_buffer = max_buffer_size

    async def log(
        self,
        store: DocumentStore,
        action: AdminAuditAction | str,
        entity_type: str,
        entity_id: str,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Записать аудит-событие."""
        action_str = action.value if isinstance(action, AdminAuditAction) else action
        record = {
            "action": action_str,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "user_id": user_id,
            "details": details or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            await store.add(COLLECTION_AUDIT_LOG, record)
        except Exception as e:
            logger.warning("Audit write failed, buffering: %s", e)
            self._write_to_buffer(record)

        try:
            from storeadmin.events import publish
            await publish(f"storeadmin.audit.{action_str}", record)
        except Exception as e:
            logger.debug("Audit NATS publish failed: %s", e)

    def _write_to_buffer(self, record: dict[str, Any]) -> None:
        """Fallback в in-memory буфер."""
        if len(self._buffer) >= self._max_buffer:
            self._buffer.pop(0)
        self._buffer.append(record)

    async def flush_buffer(self, store: DocumentStore) -> int:
        """Попытаться записать буферизованные события в хранилище."""
        if not self._buffer:
            return 0
        flushed = 0
        remaining: list[dict[str, Any]] = []
        for record in self._buffer:
            try:
                await store.add(COLLECTION_AUDIT_LOG, record)
                flushed += 1
            except Exception:
                remaining.append(record)
        self._buffer = remaining
        if flushed:
            logger.info("Flushed %d audit records from buffer", flushed)
        return flushed

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)


_audit_logger: AdminAuditLogger | None = None


def get_audit_logger() -> AdminAuditLogger:
    """Получить единственный экземпляр AdminAuditLogger."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AdminAuditLogger()
    return _audit_logger
