"""
═══════════════════════════════════════════════════════════════════════════════
StoreAdmin - Пул соединений к базе данных (Database Connection Pool)
═══════════════════════════════════════════════════════════════════════════════

Пул соединений к PostgreSQL, в которой живут документные коллекции
и identity-аккаунты. Параметры берутся из ``storeadmin.config.get_settings()``.
"""

from __future__ import annotations

import logging

import asyncpg

from storeadmin.config import get_settings

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    """
    Возвращает глобальный пул соединений к PostgreSQL.

    Создаёт пул при первом вызове с параметрами из AdminSettings.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            command_timeout=60,
        )
        logger.info(
            f"StoreAdmin DB pool created "
            f"(min={settings.database_pool_min}, max={settings.database_pool_max})"
        )
    return _pool


async def close_pool() -> None:
    """Закрывает глобальный пул соединений."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("StoreAdmin DB pool closed")


async def check_connection() -> bool:
    """SELECT 1 через уже открытый пул; пул не создаётся (health check)."""
    if _pool is None:
        return False
    try:
        async with _pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except Exception as e:
        logger.error(f"StoreAdmin DB health check failed: {e}")
        return False
