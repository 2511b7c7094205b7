"""
storeadmin/events.py - NATS Event Publisher.

Публикует доменные события admin-операций в NATS:
    • ``storeadmin.user.deleted``       - аккаунт пользователя удалён
    • ``storeadmin.user.role_updated``  - роль пользователя изменена
    • ``storeadmin.partner.approved``   - заявка партнёра одобрена
    • ``storeadmin.staff.created``      - создан аккаунт сотрудника

Соединение открывается один раз в lifespan (``connect``). Если NATS
выключен (``NATS_ENABLED``) или не подключён - событие пропускается с
записью в лог, повторных попыток подключения на каждое событие нет.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import nats
from nats.aio.client import Client as NATSClient

from storeadmin.config import get_settings

logger = logging.getLogger(__name__)

NATS_CONNECT_TIMEOUT = 2

_nc: NATSClient | None = None


async def connect() -> NATSClient | None:
    """Подключается к NATS (если ещё не подключён). Вызывается из lifespan."""
    global _nc
    if _nc is not None and _nc.is_connected:
        return _nc
    settings = get_settings()
    if not settings.nats_enabled:
        return None
    try:
        _nc = await nats.connect(
            settings.nats_url,
            connect_timeout=NATS_CONNECT_TIMEOUT,
            max_reconnect_attempts=1,
        )
        logger.info("NATS publisher connected: %s", settings.nats_url)
        return _nc
    except Exception as exc:
        logger.warning("NATS connect failed (events will be skipped): %s", exc)
        _nc = None
        return None


async def disconnect() -> None:
    """Закрывает соединение с NATS."""
    global _nc
    if _nc and _nc.is_connected:
        await _nc.drain()
        logger.info("NATS publisher disconnected")
    _nc = None


async def publish(subject: str, data: dict[str, Any]) -> None:
    """
    Публикует JSON-событие в NATS.

    Args:
        subject: Тема сообщения (e.g. ``storeadmin.user.deleted``).
        data: Payload (сериализуется в JSON).
    """
    nc = _nc
    if nc is None or not nc.is_connected:
        logger.debug("NATS not connected - skipping event %s", subject)
        return
    try:
        payload = json.dumps(data, default=str).encode("utf-8")
        await nc.publish(subject, payload)
        logger.info("NATS event published: %s", subject)
    except Exception as exc:
        logger.warning("NATS publish failed for %s: %s", subject, exc)


async def emit_user_deleted(user_id: str, email: str, deleted_by: str) -> None:
    """Событие: аккаунт пользователя удалён."""
    await publish("storeadmin.user.deleted", {
        "event": "user.deleted",
        "user_id": user_id,
        "email": email,
        "deleted_by": deleted_by,
    })


async def emit_role_updated(user_id: str, role: str, updated_by: str) -> None:
    """Событие: роль пользователя изменена."""
    await publish("storeadmin.user.role_updated", {
        "event": "user.role_updated",
        "user_id": user_id,
        "role": role,
        "updated_by": updated_by,
    })


async def emit_partner_approved(request_id: str, user_id: str, email: str, approved_by: str) -> None:
    """Событие: заявка партнёра одобрена, аккаунт создан."""
    await publish("storeadmin.partner.approved", {
        "event": "partner.approved",
        "request_id": request_id,
        "user_id": user_id,
        "email": email,
        "approved_by": approved_by,
    })


async def emit_staff_created(user_id: str, email: str, created_by: str) -> None:
    """Событие: создан аккаунт сотрудника."""
    await publish("storeadmin.staff.created", {
        "event": "staff.created",
        "user_id": user_id,
        "email": email,
        "created_by": created_by,
    })
