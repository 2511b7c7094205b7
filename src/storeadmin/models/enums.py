"""
storeadmin/models/enums.py - Перечисления.

    • StoreRole - известные значения поля ``role`` профиля
      (само поле свободное: роль партнёра может быть любой строкой)
    • PartnerRequestStatus - статус заявки партнёра
"""

from enum import Enum


class StoreRole(str, Enum):
    """Известные роли профиля."""
    ADMIN = "admin"
    ADMINISTRATOR = "administrator"
    CORE_STAFF = "core_staff"
    SELLER = "seller"


class PartnerRequestStatus(str, Enum):
    """Статус заявки партнёра: pending → approved (терминальный)."""
    PENDING = "pending"
    APPROVED = "approved"


ADMIN_ROLES = frozenset({StoreRole.ADMIN.value, StoreRole.ADMINISTRATOR.value})


def is_admin_role(role: str | None) -> bool:
    """Роль эквивалентна администратору ("admin" / "administrator")."""
    return role in ADMIN_ROLES
