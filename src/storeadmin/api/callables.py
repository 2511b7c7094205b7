"""
storeadmin/api/callables.py - Callable-эндпоинты admin-операций.

Протокол: ``POST /api/v1/callables/<operation>`` с телом ``{"data": {...}}``;
успех → ``{"result": {...}}``, ошибка → ``{"error": {...}}``
(см. ``storeadmin.main:admin_error_handler``).
"""

from fastapi import APIRouter, Depends

from storeadmin.adapters.identity_provider import IdentityProvider
from storeadmin.db.document_store import DocumentStore
from storeadmin.dependencies import get_caller, get_document_store, get_identity_provider
from storeadmin.models.caller import CallerContext
from storeadmin.models.requests import CallableRequest
from storeadmin.services import account_service

router = APIRouter(prefix="/callables", tags=["callables"])


@router.post("/deleteUserAccount", summary="Удалить аккаунт пользователя (identity + документы)")
async def delete_user_account(
    body: CallableRequest,
    caller: CallerContext | None = Depends(get_caller),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Только администратор. Требует ``userId`` и ``email``."""
    result = await account_service.delete_user_account(
        body.data, caller, store=store, identity=identity,
    )
    return {"result": result.model_dump(by_alias=True)}


@router.post("/updateUserRole", summary="Изменить роль пользователя")
async def update_user_role(
    body: CallableRequest,
    caller: CallerContext | None = Depends(get_caller),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Только администратор. Требует ``userId`` и ``newRole``."""
    result = await account_service.update_user_role(
        body.data, caller, store=store, identity=identity,
    )
    return {"result": result.model_dump(by_alias=True)}


@router.post("/approvePartnerRequest", summary="Одобрить заявку партнёра")
async def approve_partner_request(
    body: CallableRequest,
    caller: CallerContext | None = Depends(get_caller),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Только администратор. Требует ``requestId``."""
    result = await account_service.approve_partner_request(
        body.data, caller, store=store, identity=identity,
    )
    return {"result": result.model_dump(by_alias=True)}


@router.post("/createStaffAccount", summary="Создать аккаунт сотрудника")
async def create_staff_account(
    body: CallableRequest,
    caller: CallerContext | None = Depends(get_caller),
    store: DocumentStore = Depends(get_document_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Только администратор. Требует ``email``, ``password``, ``name``."""
    result = await account_service.create_staff_account(
        body.data, caller, store=store, identity=identity,
    )
    return {"result": result.model_dump(by_alias=True)}
