"""
storeadmin/services/validation.py - Проверка формы payload.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from storeadmin.exceptions import InvalidArgumentError

ModelT = TypeVar("ModelT", bound=BaseModel)


def _join_fields(fields: tuple[str, ...]) -> str:
    if len(fields) == 1:
        return f"{fields[0]} is"
    if len(fields) == 2:
        return f"{fields[0]} and {fields[1]} are"
    return f"{', '.join(fields[:-1])}, and {fields[-1]} are"


def _is_blank(value: Any) -> bool:
    return not value and not isinstance(value, (list, dict))


def require_fields(data: Any, *fields: str) -> dict[str, Any]:
    """
    Проверяет, что все ``fields`` присутствуют и не пусты.

    Отсутствие ключа, ``None``, ``""``, ``0`` и ``False`` считаются
    одинаково; строка из пробелов - заполненное значение.
    Сообщение перечисляет весь набор обязательных полей операции:
    ``"userId and email are required"``.
    """
    if not isinstance(data, dict):
        raise InvalidArgumentError(f"{_join_fields(fields)} required")
    missing = [f for f in fields if _is_blank(data.get(f))]
    if missing:
        raise InvalidArgumentError(
            f"{_join_fields(fields)} required",
            details={"missing": missing},
        )
    return data


def parse_payload(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Строит модель запроса; ошибки типов → InvalidArgument."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise InvalidArgumentError(
            f"Invalid request payload: {', '.join(fields)}",
            details={"fields": fields},
        ) from exc
