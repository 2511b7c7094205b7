"""
storeadmin/services/auth_service.py - Токены и пароли.

JWT вызывающей стороны проверяется здесь: ``sub`` - uid аккаунта,
остальные поля - custom claims (``admin`` и т.д.).
Подпись: HS256 (shared secret) или RS256 (публичный ключ внешнего
identity-сервиса, если задан ``jwt_public_key_path``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import bcrypt
from jose import jwt

from storeadmin.config import get_settings
from storeadmin.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)

_public_key_cache: str | None = None


# ═══════════════════════════════════════════════════════════════════════════
# КЛЮЧИ
# ═══════════════════════════════════════════════════════════════════════════


def _get_jwt_public_key() -> str | None:
    """Возвращает публичный ключ для верификации JWT (если настроен)."""
    global _public_key_cache
    settings = get_settings()
    if settings.jwt_public_key_path:
        if _public_key_cache is None:
            p = Path(settings.jwt_public_key_path)
            if p.is_file():
                _public_key_cache = p.read_text(encoding="utf-8")
                logger.info("JWT verification: RSA public key loaded from %s", p)
            else:
                logger.warning("JWT public key file not found: %s, falling back to shared secret", p)
        return _public_key_cache
    return None


def _get_jwt_verify_params() -> tuple[str, str]:
    """(ключ, алгоритм) для верификации входящих токенов."""
    pub = _get_jwt_public_key()
    if pub:
        return pub, "RS256"
    settings = get_settings()
    return settings.jwt_secret_key, settings.jwt_algorithm


# ═══════════════════════════════════════════════════════════════════════════
# ПАРОЛИ
# ═══════════════════════════════════════════════════════════════════════════


def hash_password(password: str) -> str:
    """Хеширует пароль с помощью bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


# ═══════════════════════════════════════════════════════════════════════════
# JWT-ТОКЕНЫ
# ═══════════════════════════════════════════════════════════════════════════


def create_access_token(
    uid: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Создаёт HS256 access-токен с custom claims (dev-инструменты, тесты)."""
    settings = get_settings()
    exp = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    payload: dict[str, Any] = dict(claims or {})
    payload.update({"sub": uid, "exp": exp, "type": "access"})
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Декодирует и проверяет JWT-токен."""
    key, algo = _get_jwt_verify_params()
    try:
        payload = jwt.decode(token, key, algorithms=[algo])
    except Exception as exc:
        raise UnauthenticatedError(f"Invalid token: {exc}") from exc
    if not payload.get("sub"):
        raise UnauthenticatedError("Token payload missing 'sub'")
    return payload
