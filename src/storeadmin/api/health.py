"""
storeadmin/api/health.py - Health check эндпоинт.

GET /api/v1/health - какие бэкенды подключены и доступна ли PostgreSQL.
"""

from fastapi import APIRouter

from storeadmin.database import check_connection
from storeadmin.dependencies import current_backends

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check StoreAdmin-сервиса")
async def health():
    """Проверяет подключённые бэкенды и доступность БД."""
    db_ok = await check_connection()
    store, identity = current_backends()
    store_kind = getattr(store, "kind", None)
    healthy = store is not None and identity is not None and (db_ok or store_kind == "memory")
    return {
        "status": "healthy" if healthy else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "document_store": store_kind,
        "identity_provider": getattr(identity, "kind", None),
        "service": "storeadmin",
    }
