"""
storeadmin/adapters/identity_provider.py - Клиент identity-сервиса.

Контракт ``IdentityProvider``: создание/удаление аккаунтов с
email+пароль и установка custom claims (``{"admin": true}``).
Ошибки - ``IdentityProviderError`` с кодом в пространстве ``auth/``.

Реализации:
    • ``PostgresIdentityProvider`` - таблица ``auth_accounts`` (bcrypt)
    • ``MemoryIdentityProvider`` - см. ``storeadmin.memory_store``
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from uuid import uuid4

import asyncpg

from storeadmin.services.auth_service import hash_password

logger = logging.getLogger(__name__)

EMAIL_ALREADY_EXISTS = "auth/email-already-exists"
USER_NOT_FOUND = "auth/user-not-found"
INVALID_EMAIL = "auth/invalid-email"
INVALID_PASSWORD = "auth/invalid-password"


class IdentityProviderError(Exception):
    """Ошибка identity-сервиса с кодом вида ``auth/<reason>``."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    @property
    def is_auth_error(self) -> bool:
        return self.code.startswith("auth/")


def new_uid() -> str:
    return uuid4().hex[:28]


def validate_credentials(email: str, password: str) -> None:
    """Минимальная проверка формы email/пароля перед созданием аккаунта."""
    if not email or "@" not in email:
        raise IdentityProviderError(
            INVALID_EMAIL, "The email address is improperly formatted."
        )
    if not password:
        raise IdentityProviderError(
            INVALID_PASSWORD, "The password must be a non-empty string."
        )


def email_exists_error(email: str) -> IdentityProviderError:
    return IdentityProviderError(
        EMAIL_ALREADY_EXISTS,
        f"The email address {email} is already in use by another account.",
    )


def user_not_found_error(uid: str) -> IdentityProviderError:
    return IdentityProviderError(
        USER_NOT_FOUND,
        f"There is no user record corresponding to the provided identifier: {uid}",
    )


class IdentityProvider(Protocol):
    """Минимальный интерфейс identity-сервиса для admin-операций."""

    async def create_user(self, email: str, password: str, display_name: str) -> dict[str, Any]: ...

    async def get_user(self, uid: str) -> dict[str, Any] | None: ...

    async def delete_user(self, uid: str) -> None: ...

    async def set_custom_user_claims(self, uid: str, claims: dict[str, Any]) -> None: ...


class PostgresIdentityProvider:
    """Аккаунты в таблице ``auth_accounts`` (email UNIQUE, bcrypt-хеш)."""

    kind = "postgres"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def create_user(self, email: str, password: str, display_name: str) -> dict[str, Any]:
        """Создать аккаунт. Дубликат email → ``auth/email-already-exists``."""
        validate_credentials(email, password)
        uid = new_uid()
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO auth_accounts (uid, email, password_hash, display_name)
                    VALUES ($1, $2, $3, $4)
                    RETURNING uid, email, display_name, custom_claims, disabled, created_at
                    """,
                    uid, email.lower(), hash_password(password), display_name,
                )
        except asyncpg.UniqueViolationError as exc:
            raise email_exists_error(email) from exc
        logger.info("Identity account created: %s <%s>", uid, email)
        return self._row_to_dict(row)

    async def get_user(self, uid: str) -> dict[str, Any] | None:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT uid, email, display_name, custom_claims, disabled, created_at
                FROM auth_accounts WHERE uid = $1
                """,
                uid,
            )
            return self._row_to_dict(row) if row else None

    async def delete_user(self, uid: str) -> None:
        async with self._pool.acquire() as conn:
            result = await conn.execute("DELETE FROM auth_accounts WHERE uid = $1", uid)
        if result.endswith(" 0"):
            raise user_not_found_error(uid)
        logger.info("Identity account deleted: %s", uid)

    async def set_custom_user_claims(self, uid: str, claims: dict[str, Any]) -> None:
        """Полностью заменяет custom claims аккаунта."""
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE auth_accounts SET custom_claims = $2::jsonb, updated_at = NOW()
                WHERE uid = $1
                """,
                uid, json.dumps(claims),
            )
        if result.endswith(" 0"):
            raise user_not_found_error(uid)

    @staticmethod
    def _row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        data = dict(row)
        claims = data.get("custom_claims")
        data["custom_claims"] = json.loads(claims) if isinstance(claims, str) else (claims or {})
        return data
