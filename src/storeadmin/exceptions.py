"""
═══════════════════════════════════════════════════════════════════════════════
StoreAdmin - Иерархия ошибок callable-операций (Error Vocabulary)
═══════════════════════════════════════════════════════════════════════════════

Фиксированный словарь ошибок, который видит вызывающая сторона.
Базовый класс ``AdminError``; каждый подкласс несёт строковый код
в стиле callable-протокола (``permission-denied``, ``not-found`` …).

HTTP-маппинг кодов выполняется в ``storeadmin.main:admin_error_handler``.
"""


class AdminError(Exception):
    """
    Базовое исключение для всех ошибок admin-операций.

    Атрибуты
    ────────
        message (str):  Описание ошибки. Передаётся клиенту в JSON.
        code (str):     Строковый код (``internal``, ``not-found`` …).
        details (dict): Дополнительные данные (entity, id и т.д.).
    """

    code = "internal"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def status(self) -> str:
        """Каноническое имя статуса: ``permission-denied`` → ``PERMISSION_DENIED``."""
        return self.code.replace("-", "_").upper()


class UnauthenticatedError(AdminError):
    """Нет идентичности вызывающего: 401."""

    code = "unauthenticated"

    def __init__(self, message: str = "User must be authenticated"):
        super().__init__(message)


class PermissionDeniedError(AdminError):
    """Вызывающий не администратор: 403."""

    code = "permission-denied"


class InvalidArgumentError(AdminError):
    """Отсутствует обязательное поле запроса: 400."""

    code = "invalid-argument"


class NotFoundError(AdminError):
    """Сущность не найдена: 404."""

    code = "not-found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class FailedPreconditionError(AdminError):
    """Сущность не в том состоянии (например, заявка не pending): 400."""

    code = "failed-precondition"


class AlreadyExistsError(AdminError):
    """Identity-сервис сообщил о конфликтующем аккаунте: 409."""

    code = "already-exists"


class InternalError(AdminError):
    """Любая прочая ошибка: 500."""

    code = "internal"


HTTP_STATUS_BY_CODE: dict[str, int] = {
    "unauthenticated": 401,
    "permission-denied": 403,
    "invalid-argument": 400,
    "not-found": 404,
    "failed-precondition": 400,
    "already-exists": 409,
    "internal": 500,
}


__all__ = [
    "AdminError",
    "UnauthenticatedError",
    "PermissionDeniedError",
    "InvalidArgumentError",
    "NotFoundError",
    "FailedPreconditionError",
    "AlreadyExistsError",
    "InternalError",
    "HTTP_STATUS_BY_CODE",
]
