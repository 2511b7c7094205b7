"""
═══════════════════════════════════════════════════════════════════════════════
StoreAdmin - Зависимости FastAPI (Dependency Injection)
═══════════════════════════════════════════════════════════════════════════════

    • ``get_caller()`` - идентичность вызывающего из заголовка Authorization
      (``None``, если заголовка нет: решение принимает сама операция).
    • ``get_document_store()`` / ``get_identity_provider()`` - бэкенды,
      подключённые в lifespan через ``configure_backends()``.
"""

from __future__ import annotations

from fastapi import Header

from storeadmin.adapters.identity_provider import IdentityProvider
from storeadmin.db.document_store import DocumentStore
from storeadmin.exceptions import InternalError, UnauthenticatedError
from storeadmin.models.caller import CallerContext
from storeadmin.services.auth_service import decode_token

_document_store: DocumentStore | None = None
_identity_provider: IdentityProvider | None = None


def configure_backends(store: DocumentStore, identity: IdentityProvider) -> None:
    """Подключает документное хранилище и identity-провайдер."""
    global _document_store, _identity_provider
    _document_store = store
    _identity_provider = identity


def reset_backends() -> None:
    global _document_store, _identity_provider
    _document_store = None
    _identity_provider = None


def get_document_store() -> DocumentStore:
    if _document_store is None:
        raise InternalError("Document store is not configured")
    return _document_store


def get_identity_provider() -> IdentityProvider:
    if _identity_provider is None:
        raise InternalError("Identity provider is not configured")
    return _identity_provider


async def get_caller(authorization: str | None = Header(None)) -> CallerContext | None:
    """
    Извлекает идентичность вызывающего из ``Authorization: Bearer <JWT>``.

    Алгоритм:
        1. Заголовка нет → ``None`` (операция ответит Unauthenticated).
        2. Неверный формат заголовка → Unauthenticated.
        3. Декодирует JWT (подпись + срок действия) → CallerContext
           с uid (claim ``sub``) и всеми claims токена.
    """
    if not authorization:
        return None

    if not authorization.startswith("Bearer "):
        raise UnauthenticatedError("Authorization header must start with 'Bearer'")

    payload = decode_token(authorization[7:])
    return CallerContext(uid=str(payload["sub"]), token=payload)


def current_backends() -> tuple[DocumentStore | None, IdentityProvider | None]:
    """Подключённые бэкенды (для health check)."""
    return _document_store, _identity_provider
