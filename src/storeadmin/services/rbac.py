"""
storeadmin/services/rbac.py - Проверка прав администратора (Authorization Gate).

Единая точка авторизации для всех admin-операций:
    1. Нет идентичности вызывающего → Unauthenticated.
    2. Профиль вызывающего (``users/{uid}``) загружается на каждый вызов.
    3. Администратор - если ``role`` ∈ {admin, administrator}
       ИЛИ в токене есть claim ``admin == true``.
    4. Иначе → PermissionDenied.
"""

from __future__ import annotations

import logging

from storeadmin.db.collections import COLLECTION_USERS
from storeadmin.db.document_store import DocumentStore
from storeadmin.exceptions import PermissionDeniedError, UnauthenticatedError
from storeadmin.models.caller import CallerContext
from storeadmin.models.enums import is_admin_role

logger = logging.getLogger(__name__)


async def is_admin(caller: CallerContext, store: DocumentStore) -> bool:
    """Определяет, является ли вызывающий администратором (без кеша)."""
    profile = await store.get(COLLECTION_USERS, caller.uid) or {}
    return is_admin_role(profile.get("role")) or caller.has_admin_claim


async def require_admin(
    caller: CallerContext | None,
    store: DocumentStore,
    denied_message: str = "Only admins can perform this operation",
) -> CallerContext:
    """
    Пропускает только администратора; возвращает его контекст.

    Raises:
        UnauthenticatedError: вызов без идентичности.
        PermissionDeniedError: вызывающий не администратор.
    """
    if caller is None:
        raise UnauthenticatedError("User must be authenticated")

    if not await is_admin(caller, store):
        logger.warning("RBAC: user %s denied: %s", caller.uid, denied_message)
        raise PermissionDeniedError(denied_message)
    return caller
