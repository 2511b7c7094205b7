"""
storeadmin/models/responses.py - Результаты callable-операций.
"""

from pydantic import BaseModel, ConfigDict, Field


class OperationResult(BaseModel):
    """``{success, message}``."""
    success: bool = True
    message: str


class AccountOperationResult(OperationResult):
    """``{success, message, userId}`` - операции, создающие аккаунт."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
