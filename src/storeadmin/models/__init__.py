"""
storeadmin.models - Модели данных StoreAdmin.

Реэкспорт основных классов для удобства:
    from storeadmin.models import CallerContext, OperationResult
"""

from storeadmin.models.caller import CallerContext  # noqa: F401
from storeadmin.models.enums import PartnerRequestStatus, StoreRole, is_admin_role  # noqa: F401
from storeadmin.models.requests import (  # noqa: F401
    ApprovePartnerRequestRequest,
    CallableRequest,
    CreateStaffAccountRequest,
    DeleteUserAccountRequest,
    UpdateUserRoleRequest,
)
from storeadmin.models.responses import AccountOperationResult, OperationResult  # noqa: F401
