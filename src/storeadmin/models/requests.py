"""
storeadmin/models/requests.py - Payload callable-операций.

Обязательность полей проверяется в ``storeadmin.services.validation``
(до любых внешних вызовов); модели описывают форму уже проверенных данных.
"""

from typing import Any

from pydantic import BaseModel, Field

from storeadmin.models.common import AdminBase


class DeleteUserAccountRequest(AdminBase):
    user_id: str = Field(..., alias="userId")
    email: str


class UpdateUserRoleRequest(AdminBase):
    user_id: str = Field(..., alias="userId")
    new_role: str = Field(..., alias="newRole")


class ApprovePartnerRequestRequest(AdminBase):
    request_id: str = Field(..., alias="requestId")


class CreateStaffAccountRequest(AdminBase):
    """Сотрудник: phone/position/bio необязательны (по умолчанию "")."""
    email: str
    password: str
    name: str
    phone: str = ""
    position: str = ""
    bio: str = ""


class CallableRequest(BaseModel):
    """Конверт callable-протокола: ``{"data": {...}}``."""
    data: Any = None
