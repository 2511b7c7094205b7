"""
═══════════════════════════════════════════════════════════════════════════════
StoreAdmin - Главная точка входа сервиса (Application Entry Point)
═══════════════════════════════════════════════════════════════════════════════

Фабрика приложения (Application Factory Pattern) для сервиса
привилегированных admin-операций магазина: удаление аккаунта, смена роли,
одобрение заявки партнёра, создание аккаунта сотрудника.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storeadmin import __version__
from storeadmin.config import get_settings
from storeadmin.database import close_pool, get_pool
from storeadmin.dependencies import configure_backends
from storeadmin.exceptions import (
    HTTP_STATUS_BY_CODE,
    AdminError,
    InternalError,
    InvalidArgumentError,
)

from storeadmin.api.callables import router as callables_router
from storeadmin.api.health import router as health_router

# ═══════════════════════════════════════════════════════════════════════════════
# Настройка логирования
# ═══════════════════════════════════════════════════════════════════════════════
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Автоматическое применение SQL-миграций
# ═══════════════════════════════════════════════════════════════════════════════

async def _apply_migrations(pool) -> None:
    """Применяет SQL-миграции из ``storeadmin/db/migrations/``."""
    migrations_dir = Path(__file__).parent / "db" / "migrations"
    if not migrations_dir.is_dir():
        logger.info("No migrations directory found - skipping")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.info("No SQL migration files found - skipping")
        return

    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS _applied_migrations (
                filename TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)

        rows = await conn.fetch("SELECT filename FROM _applied_migrations")
        applied = {row["filename"] for row in rows}

        for sql_file in sql_files:
            if sql_file.name in applied:
                continue

            logger.info(f"📄 Applying migration: {sql_file.name}")
            sql_text = sql_file.read_text(encoding="utf-8")
            async with conn.transaction():
                await conn.execute(sql_text)
                await conn.execute(
                    "INSERT INTO _applied_migrations (filename) VALUES ($1)",
                    sql_file.name,
                )
            logger.info(f"✅ Migration applied: {sql_file.name}")

    logger.info(f"✅ All StoreAdmin migrations up to date ({len(sql_files)} files checked)")


# ═══════════════════════════════════════════════════════════════════════════════
# Lifespan - управление жизненным циклом
# ═══════════════════════════════════════════════════════════════════════════════

async def _connect_backends() -> None:
    """PostgreSQL-бэкенды; при недоступности БД - memory store."""
    from storeadmin.memory_store import activate_memory_store

    settings = get_settings()
    if settings.memory_store:
        activate_memory_store()
        return

    try:
        pool = await get_pool()
        logger.info("✅ StoreAdmin database pool initialized")
    except Exception as e:
        logger.warning(f"⚠️  StoreAdmin DB not available - activating memory store: {e}")
        activate_memory_store()
        return

    try:
        await _apply_migrations(pool)
    except Exception as e:
        logger.warning(f"⚠️  StoreAdmin migration apply failed (non-fatal): {e}")

    from storeadmin.adapters.identity_provider import PostgresIdentityProvider
    from storeadmin.db.document_store import PostgresDocumentStore

    configure_backends(PostgresDocumentStore(pool), PostgresIdentityProvider(pool))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan StoreAdmin-сервиса.

    Startup:
        1. Пул соединений к PostgreSQL + миграции.
        2. При недоступности БД - graceful degradation (memory store).
        3. NATS publisher.

    Shutdown:
        1. NATS → пул БД.
    """
    settings = get_settings()
    logger.info(f"🚀 StoreAdmin v{__version__} starting...")
    logger.info(f"   Log level: {settings.log_level}")

    await _connect_backends()

    try:
        from storeadmin.events import connect as nats_connect
        await nats_connect()
    except Exception as e:
        logger.warning(f"⚠️  NATS publisher not available (events will be skipped): {e}")

    yield

    try:
        from storeadmin.events import disconnect as nats_disconnect
        await nats_disconnect()
    except Exception as e:
        logger.warning(f"NATS disconnect failed: {e}")
    try:
        await close_pool()
    except Exception as e:
        logger.warning(f"DB pool close failed: {e}")
    logger.info("🛑 StoreAdmin stopped")


# ═══════════════════════════════════════════════════════════════════════════════
# Ответ с ошибкой callable-протокола
# ═══════════════════════════════════════════════════════════════════════════════

def error_response(exc: AdminError) -> JSONResponse:
    """``{"error": {"status", "message", "details"}}`` + HTTP-статус по коду."""
    return JSONResponse(
        status_code=HTTP_STATUS_BY_CODE.get(exc.code, 500),
        content={
            "error": {
                "status": exc.status,
                "message": exc.message,
                "details": exc.details,
            }
        },
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Фабрика приложения
# ═══════════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Создаёт и конфигурирует StoreAdmin FastAPI-приложение."""
    settings = get_settings()

    _is_production = settings.app_env == "production"

    app = FastAPI(
        redirect_slashes=False,
        title="StoreAdmin",
        description=(
            "Privileged administrative operations for the storefront: "
            "account deletion, role changes, partner approval and staff accounts."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url=None if _is_production else "/docs",
        redoc_url=None if _is_production else "/redoc",
        openapi_url=None if _is_production else "/api/v1/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    )

    v1_router = APIRouter(prefix="/api/v1")
    v1_router.include_router(callables_router)
    v1_router.include_router(health_router)
    app.include_router(v1_router)

    @app.exception_handler(AdminError)
    async def admin_error_handler(request: Request, exc: AdminError) -> JSONResponse:
        """Маппинг кодов ошибок на HTTP-статусы."""
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Тело запроса не является конвертом ``{"data": ...}``."""
        return error_response(InvalidArgumentError("Request body must be a JSON object with 'data'"))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Любая непредусмотренная ошибка → INTERNAL без деталей."""
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return error_response(InternalError("Internal error"))

    @app.get("/")
    async def root():
        return {
            "name": "StoreAdmin",
            "version": __version__,
            "description": "Storefront administrative operations",
            "docs": "/docs",
            "api": {
                "v1": {
                    "health": "/api/v1/health",
                    "callables": [
                        "/api/v1/callables/deleteUserAccount",
                        "/api/v1/callables/updateUserRole",
                        "/api/v1/callables/approvePartnerRequest",
                        "/api/v1/callables/createStaffAccount",
                    ],
                },
            },
        }

    return app


# ═══════════════════════════════════════════════════════════════════════════════
# Module-level singleton
# ═══════════════════════════════════════════════════════════════════════════════
app = create_app()


def main() -> None:
    """Запускает StoreAdmin через Uvicorn."""
    settings = get_settings()
    logger.info(f"Starting StoreAdmin server on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "storeadmin.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
