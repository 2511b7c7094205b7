"""
storeadmin/services/account_service.py - Операции жизненного цикла аккаунтов.

Четыре admin-операции, каждая - короткая последовательность:
авторизация → проверка payload → вызовы identity-сервиса и документного
хранилища → маппинг ошибок на фиксированный словарь.

    • delete_user_account      - профиль + заявки + pending seller (batch), затем identity
    • update_user_role         - роль в профиле, затем claim ``admin``
    • approve_partner_request  - pending заявка → identity + профиль → approved
    • create_staff_account     - identity + профиль с ролью core_staff

Хранилища передаются явно (``store``, ``identity``), что позволяет
прогонять операции на in-memory подделках.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, AsyncIterator, Awaitable, Callable

from storeadmin.adapters.identity_provider import (
    USER_NOT_FOUND,
    IdentityProvider,
    IdentityProviderError,
)
from storeadmin.db.collections import (
    COLLECTION_PARTNER_REQUESTS,
    COLLECTION_PENDING_SELLERS,
    COLLECTION_USERS,
)
from storeadmin.db.document_store import SERVER_TIMESTAMP, DocumentStore
from storeadmin.exceptions import (
    AdminError,
    AlreadyExistsError,
    FailedPreconditionError,
    InternalError,
    NotFoundError,
)
from storeadmin.models.caller import CallerContext
from storeadmin.models.enums import PartnerRequestStatus, StoreRole, is_admin_role
from storeadmin.models.requests import (
    ApprovePartnerRequestRequest,
    CreateStaffAccountRequest,
    DeleteUserAccountRequest,
    UpdateUserRoleRequest,
)
from storeadmin.models.responses import AccountOperationResult, OperationResult
from storeadmin.services.audit_logger import AdminAuditAction, get_audit_logger
from storeadmin.services.rbac import require_admin
from storeadmin.services.validation import parse_payload, require_fields

logger = logging.getLogger(__name__)

PARTNER_OPTIONAL_FIELDS = ("phone", "businessName", "businessType", "businessAddress", "description")

STAFF_DEFAULT_PERMISSIONS = {"can_view_dashboard": True}


# ═══════════════════════════════════════════════════════════════════════════
# ВСПОМОГАТЕЛЬНОЕ
# ═══════════════════════════════════════════════════════════════════════════


async def _record(
    store: DocumentStore,
    action: AdminAuditAction,
    entity_type: str,
    entity_id: str,
    caller: CallerContext,
    details: dict[str, Any],
    event: Callable[[], Awaitable[None]] | None = None,
) -> None:
    """Аудит + событие после успешной операции; сбои только логируются."""
    try:
        await get_audit_logger().log(
            store, action, entity_type, entity_id, user_id=caller.uid, details=details,
        )
        if event is not None:
            await event()
    except Exception as exc:
        logger.warning("Failed to record %s for %s: %s", action.value, entity_id, exc)


def _map_account_creation_error(exc: Exception, generic_message: str) -> AdminError:
    """auth/* → AlreadyExists (с исходным сообщением); остальное → Internal без деталей."""
    if isinstance(exc, AdminError):
        return exc
    if isinstance(exc, IdentityProviderError) and exc.is_auth_error:
        return AlreadyExistsError(exc.message, details={"code": exc.code})
    return InternalError(generic_message)


_approval_locks: dict[str, asyncio.Lock] = {}
_approval_waiters: dict[str, int] = {}


@asynccontextmanager
async def _approval_lock(request_id: str) -> AsyncIterator[None]:
    """Сериализует одобрения одной заявки внутри процесса."""
    lock = _approval_locks.setdefault(request_id, asyncio.Lock())
    _approval_waiters[request_id] = _approval_waiters.get(request_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _approval_waiters[request_id] -= 1
        if not _approval_waiters[request_id]:
            del _approval_waiters[request_id]
            del _approval_locks[request_id]


# ═══════════════════════════════════════════════════════════════════════════
# УДАЛЕНИЕ АККАУНТА
# ═══════════════════════════════════════════════════════════════════════════


async def delete_user_account(
    data: Any,
    caller: CallerContext | None,
    *,
    store: DocumentStore,
    identity: IdentityProvider,
) -> OperationResult:
    """
    Полностью удаляет пользователя: документы (атомарно) и identity-аккаунт.

    Batch: ``users/{userId}``, все ``partner_requests`` с ``email == email``,
    ``pending_sellers/{email}``. После commit - удаление identity-аккаунта
    отдельным шагом (без отката batch при сбое).

    Повторный вызов для уже удалённого пользователя успешен: удаление
    отсутствующих документов - no-op, ``auth/user-not-found`` считается
    уже выполненным удалением.
    """
    caller = await require_admin(caller, store, "Only admins can delete user accounts")
    require_fields(data, "userId", "email")
    req = parse_payload(DeleteUserAccountRequest, data)

    try:
        batch = store.batch()
        batch.delete(COLLECTION_USERS, req.user_id)

        partner_requests = await store.where(COLLECTION_PARTNER_REQUESTS, "email", req.email)
        for doc in partner_requests:
            batch.delete(COLLECTION_PARTNER_REQUESTS, doc.id)

        batch.delete(COLLECTION_PENDING_SELLERS, req.email)
        await batch.commit()

        try:
            await identity.delete_user(req.user_id)
        except IdentityProviderError as exc:
            if exc.code != USER_NOT_FOUND:
                raise
            logger.warning("Identity account %s already absent, treating as deleted", req.user_id)
    except Exception as exc:
        logger.error("Error deleting user %s <%s>: %s", req.user_id, req.email, exc)
        raise InternalError(f"Failed to delete user: {exc}") from exc

    logger.info(
        "User %s <%s> deleted by %s (%d partner requests removed)",
        req.user_id, req.email, caller.uid, len(partner_requests),
    )

    from storeadmin.events import emit_user_deleted
    await _record(
        store, AdminAuditAction.USER_DELETE, "user", req.user_id, caller,
        {"email": req.email, "partner_requests_deleted": len(partner_requests)},
        partial(emit_user_deleted, req.user_id, req.email, caller.uid),
    )

    return OperationResult(message=f"User {req.email} deleted successfully from identity and document store")


# ═══════════════════════════════════════════════════════════════════════════
# СМЕНА РОЛИ
# ═══════════════════════════════════════════════════════════════════════════


async def update_user_role(
    data: Any,
    caller: CallerContext | None,
    *,
    store: DocumentStore,
    identity: IdentityProvider,
) -> OperationResult:
    """
    Меняет роль в профиле и синхронизирует claim ``admin``.

    Claim выставляется явно в обе стороны: смена роли с admin на любую
    другую отзывает привилегию. Две записи последовательны и не
    транзакционны.
    """
    caller = await require_admin(caller, store, "Only admins can update user roles")
    require_fields(data, "userId", "newRole")
    req = parse_payload(UpdateUserRoleRequest, data)

    try:
        await store.update(COLLECTION_USERS, req.user_id, {
            "role": req.new_role,
            "updatedAt": SERVER_TIMESTAMP,
        })
        await identity.set_custom_user_claims(req.user_id, {"admin": is_admin_role(req.new_role)})
    except Exception as exc:
        logger.error("Error updating role for %s: %s", req.user_id, exc)
        raise InternalError(f"Failed to update role: {exc}") from exc

    logger.info("User %s role set to %r by %s", req.user_id, req.new_role, caller.uid)

    from storeadmin.events import emit_role_updated
    await _record(
        store, AdminAuditAction.USER_ROLE_UPDATE, "user", req.user_id, caller,
        {"role": req.new_role},
        partial(emit_role_updated, req.user_id, req.new_role, caller.uid),
    )

    return OperationResult(message=f"User role updated to {req.new_role}")


# ═══════════════════════════════════════════════════════════════════════════
# ОДОБРЕНИЕ ЗАЯВКИ ПАРТНЁРА
# ═══════════════════════════════════════════════════════════════════════════


async def approve_partner_request(
    data: Any,
    caller: CallerContext | None,
    *,
    store: DocumentStore,
    identity: IdentityProvider,
) -> AccountOperationResult:
    """
    Одобряет заявку партнёра и создаёт для него аккаунт.

    Порядок:
        1. Заявка существует (иначе NotFound) и в статусе pending
           (иначе FailedPrecondition с текущим статусом).
        2. Роль приводится к нижнему регистру.
        3. Identity-аккаунт из email/password/name заявки.
        4. Профиль ``users/{uid}``; отсутствующие поля → None.
        5. Для admin-эквивалентной роли - claim ``admin``.
        6. Заявка → approved (approvedAt, approvedBy).

    Заявка помечается одобренной только после создания аккаунта.
    Одобрения одной заявки в процессе сериализуются; между процессами
    второй вызов упирается в уникальность email (AlreadyExists).
    """
    caller = await require_admin(caller, store, "Only admins can approve partner requests")
    require_fields(data, "requestId")
    req = parse_payload(ApprovePartnerRequestRequest, data)

    async with _approval_lock(req.request_id):
        try:
            request = await store.get(COLLECTION_PARTNER_REQUESTS, req.request_id)
            if request is None:
                raise NotFoundError("Partner request", req.request_id)

            status = request.get("status")
            if status != PartnerRequestStatus.PENDING.value:
                raise FailedPreconditionError(
                    f"Request is not pending (current status: {status})",
                    details={"status": status},
                )

            role = str(request.get("role") or StoreRole.SELLER.value).lower()
            email = request.get("email") or ""

            account = await identity.create_user(
                email, request.get("password") or "", request.get("name") or "",
            )
            uid = account["uid"]

            profile: dict[str, Any] = {
                "uid": uid,
                "name": request.get("name"),
                "email": email,
                "role": role,
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
            for field_name in PARTNER_OPTIONAL_FIELDS:
                profile[field_name] = request.get(field_name)
            await store.set(COLLECTION_USERS, uid, profile)

            if is_admin_role(role):
                await identity.set_custom_user_claims(uid, {"admin": True})

            await store.update(COLLECTION_PARTNER_REQUESTS, req.request_id, {
                "status": PartnerRequestStatus.APPROVED.value,
                "approvedAt": SERVER_TIMESTAMP,
                "approvedBy": caller.uid,
                "userId": uid,
            })
        except Exception as exc:
            mapped = _map_account_creation_error(exc, "Failed to approve partner request")
            if mapped is not exc:
                logger.error("Error approving partner request %s: %s", req.request_id, exc)
                raise mapped from exc
            raise

    logger.info("Partner request %s approved by %s → account %s", req.request_id, caller.uid, uid)

    from storeadmin.events import emit_partner_approved
    await _record(
        store, AdminAuditAction.PARTNER_APPROVE, "partner_request", req.request_id, caller,
        {"user_id": uid, "email": email, "role": role},
        partial(emit_partner_approved, req.request_id, uid, email, caller.uid),
    )

    return AccountOperationResult(
        message=f"Partner request approved. Account created for {email}",
        user_id=uid,
    )


# ═══════════════════════════════════════════════════════════════════════════
# АККАУНТ СОТРУДНИКА
# ═══════════════════════════════════════════════════════════════════════════


async def create_staff_account(
    data: Any,
    caller: CallerContext | None,
    *,
    store: DocumentStore,
    identity: IdentityProvider,
) -> AccountOperationResult:
    """Создаёт identity-аккаунт и профиль с ролью ``core_staff``."""
    caller = await require_admin(caller, store, "Only admins can create staff accounts")
    require_fields(data, "email", "password", "name")
    req = parse_payload(CreateStaffAccountRequest, data)

    try:
        account = await identity.create_user(req.email, req.password, req.name)
        uid = account["uid"]
        await store.set(COLLECTION_USERS, uid, {
            "uid": uid,
            "name": req.name,
            "email": req.email,
            "phone": req.phone,
            "position": req.position,
            "bio": req.bio,
            "role": StoreRole.CORE_STAFF.value,
            "permissions": dict(STAFF_DEFAULT_PERMISSIONS),
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
    except Exception as exc:
        logger.error("Error creating staff account <%s>: %s", req.email, exc)
        mapped = _map_account_creation_error(exc, "Failed to create staff account")
        if mapped is exc:
            raise
        raise mapped from exc

    logger.info("Staff account %s <%s> created by %s", uid, req.email, caller.uid)

    from storeadmin.events import emit_staff_created
    await _record(
        store, AdminAuditAction.STAFF_CREATE, "user", uid, caller,
        {"email": req.email, "position": req.position},
        partial(emit_staff_created, uid, req.email, caller.uid),
    )

    return AccountOperationResult(message="Staff account created successfully", user_id=uid)
